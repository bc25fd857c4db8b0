from app.extraction.base import BaseTextExtractor
from app.extraction.exceptions import TextExtractionError, UnsupportedFormatError
from app.extraction.models import ExtractionFailed, ExtractionResult, NoText, TextExtracted
from app.extraction.recognizer import TextRecognizer
from app.logging.logger import Log
from app.processor.exceptions import StorageError
from app.processor.models import DocumentFormat, UploadedDocument
from app.storage.local_disk import LocalDisk


class DocumentTextExtractor:
    """Reads an uploaded document from storage and turns it into text.

    Dispatches on the declared format. Never writes to storage.
    """

    def __init__(
        self,
        disk: LocalDisk,
        pdf_extractor: BaseTextExtractor,
        docx_extractor: BaseTextExtractor,
        recognizer: TextRecognizer,
    ) -> None:
        self._disk = disk
        self._extractors: dict[DocumentFormat, BaseTextExtractor] = {
            DocumentFormat.PDF: pdf_extractor,
            DocumentFormat.DOCX: docx_extractor,
        }
        self._recognizer = recognizer

    def extract(self, document: UploadedDocument) -> ExtractionResult:
        """Extract text from the stored upload.

        Raises:
            UnsupportedFormatError: if the declared format is not one the
                upload boundary accepts.
        """
        declared = document.declared_format
        if not isinstance(declared, DocumentFormat):
            raise UnsupportedFormatError(
                f"Unsupported file type '{declared}' for {document.original_name}"
            )

        try:
            data = self._disk.read_bytes(document.storage_key)
        except StorageError as exc:
            return ExtractionFailed(reason=str(exc), source_missing=True)

        if declared.is_image:
            return self._recognize(data)

        try:
            text = self._extractors[declared].extract(data)
        except TextExtractionError as exc:
            return ExtractionFailed(reason=str(exc))

        if not text.strip():
            return NoText(reason=f"{declared} document contains no text")
        Log.info(f"Extracted text from {declared.upper()}: {text[:100]}")
        return TextExtracted(text=text)

    def _recognize(self, image: bytes) -> ExtractionResult:
        text = self._recognizer.recognize(image)
        if text is None or not text.strip():
            return NoText(reason="no text recognized in image")
        return TextExtracted(text=text.strip())
