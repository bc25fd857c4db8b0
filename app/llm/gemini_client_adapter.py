import httpx

from app.llm.client_base import BaseLlmClient
from app.llm.exceptions import ConfigurationError, TransportError, UpstreamError
from app.logging.logger import Log


class GeminiClientAdapter(BaseLlmClient):
    """LLM client for the Gemini generateContent REST endpoint."""

    DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        endpoint: str = "",
        http_client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._endpoint = (endpoint or self.DEFAULT_ENDPOINT).rstrip("/")
        self._client = http_client or httpx.Client(timeout=float(timeout_seconds))

    def complete(self, prompt: str, *, expect_json: bool = True) -> str:
        if not self._api_key:
            raise ConfigurationError("Gemini API key missing")

        payload: dict[str, object] = {"contents": [{"parts": [{"text": prompt}]}]}
        if expect_json:
            payload["generationConfig"] = {"responseMimeType": "application/json"}

        try:
            response = self._client.post(
                f"{self._endpoint}/models/{self._model}:generateContent",
                params={"key": self._api_key},
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                json=payload,
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"Gemini request timed out: {exc}") from exc
        except httpx.RequestError as exc:
            raise TransportError(f"Gemini network error: {exc}") from exc

        Log.debug(f"Gemini API raw response: {response.text}")
        if not response.is_success:
            Log.error(f"Gemini API HTTP error {response.status_code}")
            raise UpstreamError(response.status_code, response.text)
        return response.text
