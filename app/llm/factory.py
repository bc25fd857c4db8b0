from typing import ClassVar

from app.llm.client_base import BaseLlmClient
from app.llm.config import LlmGatewayConfig
from app.llm.example_client_adapter import ExampleClientAdapter
from app.llm.gemini_client_adapter import GeminiClientAdapter
from app.llm.openai_client_adapter import OpenAIClientAdapter


class LlmGatewayFactory:
    """Creates the configured LLM client."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, config: LlmGatewayConfig) -> BaseLlmClient:
        provider = config.provider
        if provider == "example":
            return ExampleClientAdapter()
        if provider == "gemini":
            return GeminiClientAdapter(
                api_key=config.api_key,
                model=config.model,
                timeout_seconds=config.timeout_seconds,
                endpoint=config.endpoint,
            )
        return OpenAIClientAdapter(
            api_key=config.api_key,
            model=config.model,
            timeout_seconds=config.timeout_seconds,
            base_url=cls._resolve_base_url(provider, config),
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, config: LlmGatewayConfig) -> str | None:
        if provider == "openai":
            return config.endpoint or None
        if provider == "openai_compatible":
            if not config.endpoint:
                raise ValueError(
                    "llm_endpoint is required for llm_provider=openai_compatible"
                )
            return config.endpoint
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return config.endpoint or default_base_url
        supported = [
            "example",
            "gemini",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(f"Unknown LLM provider '{provider}'. Choose from: {supported}")
