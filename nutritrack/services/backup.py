"""整库备份与恢复。

导出格式::

    {
      "version": 2,
      "users": [...],
      "logs": {"<userId>": [...]},
      "workouts": {...}, "bodyChecks": {...}, "savedFoods": {...}, "dailyStats": {...}
    }

分组集合中的记录不携带 userId，恢复时由分组键重新附加。
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from ..database.entity_store import EntityStore
from ..database.models import Stores
from ..errors import InvalidBackup, RestoreFailed, StoreError
from ..repositories.daily_stats_repository import daily_stats_key
from ..schemas import DataBackup
from .migrations import BACKUP_VERSION, migrate

logger = logging.getLogger("nutritrack.backup")

# (文档键, DataBackup 字段, 存储集合)
GROUPED_COLLECTIONS = (
    ("logs", "logs", Stores.LOGS),
    ("workouts", "workouts", Stores.WORKOUTS),
    ("bodyChecks", "body_checks", Stores.BODY_CHECKS),
    ("savedFoods", "saved_foods", Stores.SAVED_FOODS),
    ("dailyStats", "daily_stats", Stores.DAILY_STATS),
)


class BackupCodec:
    def __init__(self, store: EntityStore):
        self.store = store

    async def export(self) -> str:
        document: dict[str, Any] = {
            "version": BACKUP_VERSION,
            "users": await self.store.get_all(Stores.USERS),
        }
        for key, _, collection in GROUPED_COLLECTIONS:
            grouped: dict[str, list[dict[str, Any]]] = {}
            for record in await self.store.get_all(collection):
                record = dict(record)
                user_id = record.pop("userId", None)
                if not user_id:
                    logger.warning("跳过无归属记录: %s/%s", collection, record.get("id"))
                    continue
                grouped.setdefault(user_id, []).append(record)
            document[key] = grouped
        logger.info(
            "导出备份: %d 个用户, %s",
            len(document["users"]),
            ", ".join(f"{k}={sum(len(v) for v in document[k].values())}" for k, _, _ in GROUPED_COLLECTIONS),
        )
        return json.dumps(document, ensure_ascii=False, indent=2)

    def parse(self, text: str) -> DataBackup:
        """解析并校验备份文档，不触碰存储。"""
        try:
            raw = json.loads(text)
        except (TypeError, ValueError) as e:
            raise InvalidBackup(f"备份不是合法 JSON: {e}") from e
        if not isinstance(raw, dict):
            raise InvalidBackup("备份顶层必须是对象")
        if not isinstance(raw.get("users"), list):
            raise InvalidBackup("备份缺少 users 列表")

        snapshot = migrate(raw)
        for key, _, _ in GROUPED_COLLECTIONS:
            # 键存在但为空（null / {}）视为空集合
            snapshot[key] = snapshot.get(key) or {}
        try:
            return DataBackup.model_validate(snapshot)
        except ValidationError as e:
            raise InvalidBackup(f"备份结构校验失败: {e}") from e

    def _flatten(self, backup: DataBackup) -> dict[str, list[dict[str, Any]]]:
        records: dict[str, list[dict[str, Any]]] = {
            Stores.USERS: [u.to_record() for u in backup.users]
        }
        for _, field_name, collection in GROUPED_COLLECTIONS:
            flat: list[dict[str, Any]] = []
            for user_id, items in getattr(backup, field_name).items():
                for item in items:
                    record = item.to_record()
                    record["userId"] = user_id
                    if collection == Stores.DAILY_STATS and not record.get("id"):
                        # 旧版本快照没有复合主键
                        record["id"] = daily_stats_key(user_id, record["date"])
                    flat.append(record)
            records[collection] = flat
        for collection, items in records.items():
            seen: dict[str, Any] = {}
            for r in items:
                if not r.get("id"):
                    raise InvalidBackup(f"集合 {collection} 存在缺少 id 的记录")
                # 同一集合内主键重复会在写入时相互覆盖
                if r["id"] in seen:
                    logger.error(
                        "备份主键冲突: %s/%s (用户 %s 与 %s)",
                        collection,
                        r["id"],
                        seen[r["id"]],
                        r.get("userId"),
                    )
                    raise InvalidBackup(f"集合 {collection} 存在重复 id: {r['id']}")
                seen[r["id"]] = r.get("userId")
        return records

    async def restore(self, text: str) -> DataBackup:
        """用快照替换整库数据。

        解析、迁移和校验全部在清空任何集合之前完成；写入阶段失败时抛出
        RestoreFailed，已清空的集合不会回滚。
        """
        backup = self.parse(text)
        plan = self._flatten(backup)

        written: dict[str, int] = {}
        for collection, records in plan.items():
            try:
                await self.store.clear(collection)
                written[collection] = await self.store.put_many(collection, records)
            except StoreError as e:
                logger.error("恢复在集合 %s 失败，已完成: %s", collection, written)
                raise RestoreFailed(f"恢复写入 {collection} 失败: {e}") from e

        logger.info("备份已恢复 (v%d): %s", backup.version, written)
        return backup
