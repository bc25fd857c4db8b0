import io

import pdfplumber

from app.extraction.base import BaseTextExtractor
from app.extraction.exceptions import TextExtractionError


class PdfPlumberAdapter(BaseTextExtractor):
    """Extracts text from every PDF page using pdfplumber."""

    def extract(self, data: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as exc:
            raise TextExtractionError(f"pdfplumber extraction failed: {exc}") from exc
        return "\n".join(pages).strip()
