from dataclasses import dataclass


@dataclass(frozen=True)
class TextExtracted:
    """Non-empty text read from the document."""

    text: str


@dataclass(frozen=True)
class NoText:
    """The document produced no text (blank document, or image without OCR)."""

    reason: str = ""


@dataclass(frozen=True)
class ExtractionFailed:
    """The document could not be read at all."""

    reason: str
    source_missing: bool = False


ExtractionResult = TextExtracted | NoText | ExtractionFailed
