import io
from collections.abc import Iterator

from docx import Document
from docx.document import Document as DocxDocument
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.paragraph import Paragraph

from app.extraction.base import BaseTextExtractor
from app.extraction.exceptions import TextExtractionError


class DocxAdapter(BaseTextExtractor):
    """Extracts text from a DOCX body using python-docx.

    Paragraphs (list items included) and table cells are read in document
    order and joined with single spaces.
    """

    def extract(self, data: bytes) -> str:
        try:
            document = Document(io.BytesIO(data))
        except Exception as exc:
            raise TextExtractionError(f"python-docx extraction failed: {exc}") from exc
        pieces = [piece for piece in self._iter_text(document) if piece]
        return " ".join(pieces).strip()

    def _iter_text(self, document: DocxDocument) -> Iterator[str]:
        for child in document.element.body.iterchildren():
            if child.tag == qn("w:p"):
                yield Paragraph(child, document).text.strip()
            elif child.tag == qn("w:tbl"):
                yield from self._iter_table(Table(child, document))

    def _iter_table(self, table: Table) -> Iterator[str]:
        seen: set[object] = set()
        for row in table.rows:
            for cell in row.cells:
                # merged cells repeat once per spanned grid column
                if cell._tc in seen:
                    continue
                seen.add(cell._tc)
                yield cell.text.strip()
