from dataclasses import dataclass

from app.config.settings import Settings
from app.normalization.models import PromptVariant


@dataclass(frozen=True)
class LlmGatewayConfig:
    """Everything an LLM client needs, resolved once from settings."""

    provider: str
    endpoint: str
    api_key: str
    model: str
    timeout_seconds: int
    prompt_variant: PromptVariant = PromptVariant.QUESTIONS

    @classmethod
    def from_settings(cls, settings: Settings) -> "LlmGatewayConfig":
        return cls(
            provider=settings.llm_provider.lower(),
            endpoint=settings.llm_endpoint.strip(),
            api_key=settings.llm_api_key,
            model=settings.llm_model_name,
            timeout_seconds=settings.llm_timeout_seconds,
            prompt_variant=PromptVariant(settings.prompt_variant.lower()),
        )
