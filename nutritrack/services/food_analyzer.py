import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from ..errors import EstimationError
from ..prompt_manager import PromptManager
from ..schemas import FoodEstimate
from ..utils import parse_llm_json

logger = logging.getLogger("nutritrack.food_analyzer")


class FoodAnalyzer:
    """调用多模态 LLM 估算食物的宏量营养。任何失败都抛出 EstimationError。"""

    def __init__(
        self,
        client: AsyncOpenAI,
        prompt_manager: PromptManager,
        model: str = "qwen3.5-plus",
    ):
        self.client = client
        self.prompt_manager = prompt_manager
        self.model = model

    def _build_messages(self, text: Optional[str], image_data_url: Optional[str]) -> list[dict]:
        prompt = self.prompt_manager.render(
            "food_estimator.j2",
            description=(text or "").strip(),
            has_image=bool(image_data_url),
        )
        if not image_data_url:
            return [{"role": "user", "content": prompt}]
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": image_data_url}},
                ],
            }
        ]

    async def estimate(
        self, text: Optional[str] = None, image_data_url: Optional[str] = None
    ) -> FoodEstimate:
        if not (text and text.strip()) and not image_data_url:
            raise EstimationError("需要提供食物描述或图片")

        messages = self._build_messages(text, image_data_url)
        logger.debug("开始调用 LLM (%s) 估算营养, 图片=%s", self.model, bool(image_data_url))
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=0.1,
                stream=False,
            )
        except OpenAIError as e:
            logger.error("营养估算 API 调用失败: %s", e)
            raise EstimationError(f"营养估算服务调用失败: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        estimate = parse_llm_json(content or "", model=FoodEstimate)
        if estimate is None:
            raise EstimationError("营养估算返回内容为空或无法解析")

        logger.info("营养估算完成: %s, %.0f kcal", estimate.name, estimate.calories)
        return estimate
