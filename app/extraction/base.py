from abc import ABC, abstractmethod


class BaseTextExtractor(ABC):
    """Contract for all document text extraction adapters."""

    @abstractmethod
    def extract(self, data: bytes) -> str:
        """Extract plain text from a document's bytes.

        Args:
            data: Raw file content.

        Returns:
            Extracted text as a single trimmed string. Empty when the
            document carries no text.

        Raises:
            TextExtractionError: if the bytes cannot be parsed.
        """
