class LlmError(Exception):
    """Base exception for LLM gateway failures."""

    retryable: bool = False


class ConfigurationError(LlmError):
    """Raised when the gateway is missing a credential or setting. Fatal for the run."""


class TransportError(LlmError):
    """Raised on network failures and timeouts talking to the provider."""

    retryable = True


class UpstreamError(LlmError):
    """Raised when the provider answers with a non-2xx status."""

    retryable = True

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"LLM provider HTTP error {status}: {body[:500]}")
        self.status = status
        self.body = body
