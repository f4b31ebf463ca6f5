"""备份文档的版本迁移链。

每一步都是纯函数：接收旧版本快照，返回新版本快照，不修改输入。
  v0: 无 version 字段的早期导出（仅 users + logs）
  v1: localStorage 时代，增加 workouts / bodyChecks / savedFoods（可缺省）
  v2: 增加 dailyStats，所有分组集合必定存在
"""

import logging
from typing import Any, Callable

from ..errors import InvalidBackup

logger = logging.getLogger("nutritrack.backup.migrations")

BACKUP_VERSION = 2

Snapshot = dict[str, Any]


def _v0_to_v1(snapshot: Snapshot) -> Snapshot:
    migrated = dict(snapshot)
    migrated["logs"] = migrated.get("logs") or {}
    migrated["version"] = 1
    return migrated


def _v1_to_v2(snapshot: Snapshot) -> Snapshot:
    migrated = dict(snapshot)
    for key in ("workouts", "bodyChecks", "savedFoods", "dailyStats"):
        migrated[key] = migrated.get(key) or {}
    migrated["version"] = 2
    return migrated


MIGRATIONS: dict[int, Callable[[Snapshot], Snapshot]] = {
    0: _v0_to_v1,
    1: _v1_to_v2,
}


def snapshot_version(snapshot: Snapshot) -> int:
    version = snapshot.get("version", 0)
    if isinstance(version, bool) or not isinstance(version, int):
        raise InvalidBackup(f"version 字段无效: {version!r}")
    if version < 0 or version > BACKUP_VERSION:
        raise InvalidBackup(f"不支持的备份版本 {version}（当前 {BACKUP_VERSION}）")
    return version


def migrate(snapshot: Snapshot) -> Snapshot:
    """将快照逐步迁移到 BACKUP_VERSION。"""
    version = snapshot_version(snapshot)
    while version < BACKUP_VERSION:
        snapshot = MIGRATIONS[version](snapshot)
        logger.debug("备份迁移 v%d -> v%d", version, snapshot["version"])
        version = snapshot["version"]
    return snapshot
