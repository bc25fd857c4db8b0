import io
import json
from pathlib import Path

import pytest
from docx import Document
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from app.storage.file_storage import FileStorage
from app.storage.local_disk import LocalDisk


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "1. What is the capital of Kenya?")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_docx_bytes() -> bytes:
    """A DOCX with a heading, a list item, and a table between paragraphs."""
    doc = Document()
    doc.add_paragraph("MATHEMATICS  END TERM EXAM")
    doc.add_paragraph("Add 2 and 3", style="List Number")
    table = doc.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Cell A"
    table.rows[0].cells[1].text = "Cell B"
    doc.add_paragraph("Last line")
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture()
def empty_docx_bytes() -> bytes:
    buf = io.BytesIO()
    Document().save(buf)
    return buf.getvalue()


@pytest.fixture()
def storage(tmp_path: Path) -> FileStorage:
    return FileStorage(
        private=LocalDisk(tmp_path / "private"),
        public=LocalDisk(tmp_path / "public"),
    )


def gemini_envelope(text: str) -> str:
    """Wrap model text the way the Gemini generateContent API does."""
    return json.dumps({"candidates": [{"content": {"parts": [{"text": text}]}}]})


def chat_envelope(text: str) -> str:
    """Wrap model text the way OpenAI-compatible chat completions do."""
    return json.dumps({"choices": [{"message": {"role": "assistant", "content": text}}]})


@pytest.fixture()
def exam_payload() -> list[dict[str, object]]:
    return [
        {
            "examName": "Grade 6 Mathematics End Term",
            "examiner": "Kenya Examiners Council",
            "subject": "Mathematics",
            "class": "Grade 6",
            "term": "2",
            "year": "2024",
            "curriculum": "CBC",
            "type": "End Term",
            "questions": [
                {
                    "question_number": 2,
                    "question_sub_part": None,
                    "question": "Add 2 and 3.",
                    "answer": "5",
                    "has_image": False,
                },
                {
                    "question_number": 1,
                    "question_sub_part": "b",
                    "question": "Name the shape labelled B.",
                    "answer": "Triangle",
                    "has_image": True,
                },
                {
                    "question_number": 1,
                    "question_sub_part": "a",
                    "question": "Name the shape labelled A.",
                    "answer": "Square",
                    "has_image": True,
                },
            ],
        }
    ]
