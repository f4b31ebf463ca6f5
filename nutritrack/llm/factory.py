from openai import AsyncOpenAI

from ..config import DEFAULT_LLM_BASE_URL, LLMSettings
from ..errors import EstimationError


class LLMFactory:
    """LLM 客户端工厂，通过 configure() 注入配置。"""

    _api_key: str = ""
    _base_url: str = DEFAULT_LLM_BASE_URL

    @classmethod
    def configure(cls, api_key: str, base_url: str = "") -> None:
        cls._api_key = api_key
        if base_url:
            cls._base_url = base_url

    @classmethod
    def configure_from(cls, settings: LLMSettings) -> None:
        cls.configure(settings.api_key, settings.base_url)

    @classmethod
    def create_async_client(cls, provider: str = "qwen") -> AsyncOpenAI:
        if not cls._api_key:
            raise EstimationError("缺少 LLM API Key，请设置 NUTRITRACK_LLM_API_KEY")
        if provider == "qwen":
            return AsyncOpenAI(
                api_key=cls._api_key,
                base_url=cls._base_url,
                timeout=120.0,
            )
        raise ValueError(f"Unsupported provider: {provider}")
