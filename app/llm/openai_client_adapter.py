import httpx
import openai

from app.llm.client_base import BaseLlmClient
from app.llm.exceptions import ConfigurationError, TransportError, UpstreamError
from app.logging.logger import Log


class OpenAIClientAdapter(BaseLlmClient):
    """LLM client built on the OpenAI-compatible chat completions API.

    Returns the raw HTTP body so the normalizer sees the same
    ``choices[0].message.content`` envelope for every compatible provider.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._client = openai.OpenAI(
            api_key=api_key or "missing",
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )

    def complete(self, prompt: str, *, expect_json: bool = True) -> str:
        if not self._api_key:
            raise ConfigurationError("OpenAI API key missing")

        extra: dict[str, object] = {}
        if expect_json:
            extra["response_format"] = {"type": "json_object"}
        try:
            raw = self._client.chat.completions.with_raw_response.create(
                model=self._model,
                temperature=0.0,
                messages=[{"role": "user", "content": prompt}],
                **extra,  # type: ignore[arg-type]
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise TransportError(f"AI provider network error: {exc}") from exc
        except openai.APIStatusError as exc:
            raise UpstreamError(exc.status_code, exc.response.text) from exc
        except openai.APIError as exc:
            raise TransportError(f"AI provider API error: {exc}") from exc

        body = raw.http_response.text
        Log.debug(f"OpenAI API raw response: {body}")
        return body
