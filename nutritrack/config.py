import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_LLM_BASE_URL = "https://dashscope.aliyuncs.com/compatible-mode/v1"


class DatabaseSettings(BaseModel):
    url: str = "sqlite+aiosqlite:///./nutritrack.db"


class LLMSettings(BaseModel):
    api_key: str = ""
    base_url: str = DEFAULT_LLM_BASE_URL
    model: str = "qwen3.5-plus"
    provider: str = "qwen"


class ImageSettings(BaseModel):
    max_width: int = Field(800, gt=0)
    quality: int = Field(70, ge=1, le=95)


class Settings(BaseModel):
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    image: ImageSettings = Field(default_factory=ImageSettings)
    preferences_path: Path = Path("./nutritrack_prefs.json")


def load_settings() -> Settings:
    """从环境变量读取配置，缺失项使用默认值。"""
    database = DatabaseSettings()
    if os.getenv("NUTRITRACK_DB_URL"):
        database.url = os.environ["NUTRITRACK_DB_URL"]

    llm = LLMSettings(
        api_key=os.getenv("NUTRITRACK_LLM_API_KEY", ""),
        base_url=os.getenv("NUTRITRACK_LLM_BASE_URL") or DEFAULT_LLM_BASE_URL,
        model=os.getenv("NUTRITRACK_LLM_MODEL") or "qwen3.5-plus",
    )

    image = ImageSettings(
        max_width=int(os.getenv("NUTRITRACK_IMAGE_MAX_WIDTH", "800")),
        quality=int(os.getenv("NUTRITRACK_IMAGE_QUALITY", "70")),
    )

    prefs = os.getenv("NUTRITRACK_PREFS")
    return Settings(
        database=database,
        llm=llm,
        image=image,
        preferences_path=Path(prefs).expanduser() if prefs else Path("./nutritrack_prefs.json"),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
