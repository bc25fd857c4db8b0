from abc import ABC, abstractmethod

from app.logging.logger import Log


class TextRecognizer(ABC):
    """Capability contract for reading text out of an image (OCR)."""

    @abstractmethod
    def recognize(self, image: bytes) -> str | None:
        """Return the text found in the image, or None when nothing was read."""


class NullTextRecognizer(TextRecognizer):
    """Default recognizer: OCR is not available, so images never yield text."""

    def recognize(self, image: bytes) -> str | None:
        Log.warning(
            f"OCR requested for a {len(image)} byte image, "
            "but no text recognizer is configured"
        )
        return None
