from abc import ABC, abstractmethod


class BaseLlmClient(ABC):
    """Contract for provider-specific LLM clients."""

    @abstractmethod
    def complete(self, prompt: str, *, expect_json: bool = True) -> str:
        """Send one prompt and return the provider's raw response body.

        The body is returned as-is; envelopes differ between providers, so
        locating the generated text is left to the response normalizer.

        Raises:
            ConfigurationError: if no API key is configured.
            TransportError: on network failures and timeouts.
            UpstreamError: on a non-2xx response.
        """
