import json
import logging
import math
import random
import re
import string
import time
from datetime import date
from typing import Any, Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)

logger = logging.getLogger("nutritrack.utils")

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_id(length: int = 7) -> str:
    """生成短随机 ID（base36）。"""
    return "".join(random.choices(_ID_ALPHABET, k=length))


def today_str() -> str:
    """当天日期 YYYY-MM-DD（本地时区）。"""
    return date.today().isoformat()


def now_ms() -> int:
    return int(time.time() * 1000)


def round_half_up(value: float) -> int:
    # 与前端 Math.round 保持一致：.5 一律向上取整
    return int(math.floor(value + 0.5))


def parse_llm_json(
    text: str, model: Optional[type[T]] = None
) -> Union[dict[str, Any], T, None]:
    """清洗并解析 LLM 返回的 JSON 字符串。

    提供 Pydantic 模型时进行校验；校验失败返回 None，由调用方走手动录入回退。
    """
    if not text or not text.strip():
        logger.warning("LLM 返回空内容，无法解析 JSON")
        return None

    fenced = re.search(r"```(?:json)?\s*(.*?)\s*```", text, re.DOTALL)
    json_str = fenced.group(1) if fenced else text.strip()

    start_idx = json_str.find("{")
    end_idx = json_str.rfind("}")
    if start_idx != -1 and end_idx != -1:
        json_str = json_str[start_idx : end_idx + 1]

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        logger.error("JSON 解析失败: %s | 原始内容: %s", e, text[:200])
        return None

    if model is None:
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning("Pydantic 校验失败: %s", e)
        return None
