"""应用上下文：当前用户与界面偏好。

独立于实体存储持久化为一个 JSON 文件，启动时读取一次以自动恢复上次会话。
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger("nutritrack.session")


class ReminderTimes(BaseModel):
    lunch: str = Field("12:00", pattern=r"^\d{2}:\d{2}$")
    dinner: str = Field("19:00", pattern=r"^\d{2}:\d{2}$")


class AppContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_user_id: Optional[str] = Field(None, alias="currentUserId")
    theme: str = "emerald"
    dark_mode: Optional[bool] = Field(None, alias="darkMode", description="None 表示跟随系统")
    notifications_enabled: bool = Field(True, alias="notificationsEnabled")
    reminder_times: ReminderTimes = Field(default_factory=ReminderTimes, alias="reminderTimes")


class PreferencesStore:
    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> AppContext:
        if not self.path.exists():
            return AppContext()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return AppContext.model_validate(raw)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("偏好文件损坏，使用默认值: %s (%s)", self.path, e)
            return AppContext()

    def save(self, context: AppContext) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(
            context.model_dump_json(by_alias=True, indent=2),
            encoding="utf-8",
        )
        os.replace(tmp, self.path)
