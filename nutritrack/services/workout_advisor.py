import logging

from openai import AsyncOpenAI, OpenAIError

from ..errors import EstimationError
from ..prompt_manager import PromptManager
from ..schemas import WorkoutPlan
from ..utils import parse_llm_json

logger = logging.getLogger("nutritrack.workout_advisor")


class WorkoutAdvisor:
    def __init__(
        self,
        client: AsyncOpenAI,
        prompt_manager: PromptManager,
        model: str = "qwen3.5-plus",
    ):
        self.client = client
        self.prompt_manager = prompt_manager
        self.model = model

    async def generate_plan(self, target: str, context: str = "") -> WorkoutPlan:
        """按目标部位/自定义描述生成单次训练计划。"""
        prompt = self.prompt_manager.render("workout_advisor.j2", target=target, context=context)
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "你是一个只输出 JSON 的健身教练。"},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.3,
                stream=False,
            )
        except OpenAIError as e:
            logger.error("训练计划生成失败: %s", e)
            raise EstimationError(f"训练计划服务调用失败: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        plan = parse_llm_json(content or "", model=WorkoutPlan)
        if plan is None:
            raise EstimationError("训练计划返回内容为空或无法解析")
        return plan
