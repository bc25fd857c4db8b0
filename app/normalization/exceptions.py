class NormalizationError(Exception):
    """Raised when the model reply cannot be turned into exam records.

    Malformed model output does not fix itself on an immediate retry, so
    none of these errors are retryable.
    """

    retryable: bool = False


class ResponseStructureError(NormalizationError):
    """Raised when no JSON candidate can be located in the raw reply."""


class ResponseJsonDecodeError(NormalizationError):
    """Raised when the located candidate text is not valid JSON."""

    def __init__(self, message: str, raw_text: str) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class UnexpectedResponseShapeError(NormalizationError):
    """Raised when the decoded JSON matches none of the known exam shapes."""
