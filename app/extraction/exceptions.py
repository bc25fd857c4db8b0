from app.processor.exceptions import ProcessorError


class TextExtractionError(ProcessorError):
    """Raised when a stored document could not be turned into text."""


class UnsupportedFormatError(ProcessorError):
    """Raised when a job declares a format the upload boundary never accepts."""
