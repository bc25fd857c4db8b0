"""Renders a generated answer key into a downloadable PDF with reportlab."""

import io
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from app.normalization.models import NormalizedExamRecord
from app.rendering.exceptions import ArtifactRenderError

LEFT_MARGIN = 56
RIGHT_MARGIN = 56
TOP_MARGIN = 64
BOTTOM_MARGIN = 64

ACCENT = colors.HexColor("#1a3d7c")
SOFT_GREY = colors.HexColor("#555555")
HAIRLINE = colors.HexColor("#DDDDDD")

_styles = getSampleStyleSheet()

style_title = ParagraphStyle(
    "AnswerSheetTitle",
    parent=_styles["Title"],
    fontSize=20,
    leading=26,
    textColor=ACCENT,
    spaceAfter=6,
)

style_meta = ParagraphStyle(
    "AnswerSheetMeta",
    parent=_styles["Normal"],
    fontSize=10,
    leading=14,
    textColor=SOFT_GREY,
    spaceAfter=12,
)

style_answer = ParagraphStyle(
    "AnswerSheetLine",
    parent=_styles["Normal"],
    fontSize=11,
    leading=15,
    spaceAfter=4,
)


def _footer(canvas: Canvas, doc: SimpleDocTemplate) -> None:
    canvas.saveState()
    canvas.setStrokeColor(HAIRLINE)
    canvas.setLineWidth(0.5)
    canvas.line(LEFT_MARGIN, 52, A4[0] - RIGHT_MARGIN, 52)
    canvas.setFont("Helvetica", 9)
    canvas.drawString(LEFT_MARGIN, 40, "Generated answers")
    canvas.drawRightString(A4[0] - RIGHT_MARGIN, 40, f"Page {doc.page}")
    canvas.restoreState()


class AnswerSheetRenderer:
    """Lays out an exam's generated answers as a simple A4 document."""

    def render(self, record: NormalizedExamRecord) -> bytes:
        """Render the record's generated answers to PDF bytes.

        Raises:
            ArtifactRenderError: if there is nothing to render or reportlab fails.
        """
        answers = (record.generated_answers or "").strip()
        if not answers:
            raise ArtifactRenderError(f"No generated answers to render for {record.exam_name}")

        story = [
            Paragraph(escape(f"{record.exam_name} - Answers"), style_title),
            Paragraph(escape(self._meta_line(record)), style_meta),
            Spacer(1, 8),
        ]
        for line in answers.replace("\r\n", "\n").split("\n"):
            if line.strip():
                story.append(Paragraph(escape(line.strip()), style_answer))
            else:
                story.append(Spacer(1, 6))

        buf = io.BytesIO()
        try:
            doc = SimpleDocTemplate(
                buf,
                pagesize=A4,
                leftMargin=LEFT_MARGIN,
                rightMargin=RIGHT_MARGIN,
                topMargin=TOP_MARGIN,
                bottomMargin=BOTTOM_MARGIN,
                title=record.exam_name,
            )
            doc.build(story, onFirstPage=_footer, onLaterPages=_footer)
        except Exception as exc:
            raise ArtifactRenderError(f"Failed to render answer sheet: {exc}") from exc
        return buf.getvalue()

    @staticmethod
    def _meta_line(record: NormalizedExamRecord) -> str:
        parts = [
            record.subject,
            record.class_name,
            f"Term {record.term}" if record.term is not None else None,
            record.year,
            record.curriculum,
        ]
        return " | ".join(part for part in parts if part)
