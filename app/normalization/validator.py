"""Turns one loosely-typed exam dict from the model into a NormalizedExamRecord."""

import json
from typing import Any

from app.logging.logger import Log
from app.normalization.models import NormalizedExamRecord, QuestionAnswer, sort_questions

_MAX_SUB_PART_LENGTH = 10
# exams metadata columns are VARCHAR(255), term and question_number INTEGER
_MAX_COLUMN_LENGTH = 255
_MAX_INTEGER = 2**31 - 1
_REQUIRED_QUESTION_FIELDS = ("question_number", "question", "answer")


def build_exam_record(data: dict[str, Any], original_name: str) -> NormalizedExamRecord:
    """Apply defaults and coercions to one exam dict.

    Missing metadata becomes None, a missing or blank examName falls back to
    the uploaded file's original name, and questions lacking a number, text or
    answer are dropped with a warning.
    """
    exam_name = (_column_str(data.get("examName")) or original_name)[:_MAX_COLUMN_LENGTH]
    return NormalizedExamRecord(
        exam_name=exam_name,
        examiner=_column_str(data.get("examiner")),
        subject=_column_str(data.get("subject")),
        class_name=_column_str(data.get("class")),
        term=coerce_term(data.get("term")),
        year=_column_str(data.get("year")),
        curriculum=_column_str(data.get("curriculum")),
        type=_column_str(data.get("type")),
        questions=build_questions(data.get("questions"), exam_name),
        generated_answers=_optional_str(data.get("generatedAnswers")),
    )


def coerce_term(raw: Any) -> int | None:
    """Return the term as an int when it is numeric and fits the column, otherwise None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        term = raw
    elif isinstance(raw, (float, str)):
        try:
            term = int(float(raw))
        except (ValueError, OverflowError):
            return None
    else:
        return None
    return term if -_MAX_INTEGER <= term <= _MAX_INTEGER else None


def build_questions(raw: Any, exam_name: str) -> list[QuestionAnswer]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        Log.warning(f"Ignoring non-list 'questions' value for exam {exam_name}")
        return []
    questions: list[QuestionAnswer] = []
    for item in raw:
        question = build_question(item)
        if question is None:
            Log.warning(
                "Skipping question due to missing essential data: "
                f"{json.dumps(item, default=str)}"
            )
            continue
        questions.append(question)
    return sort_questions(questions)


def build_question(raw: Any) -> QuestionAnswer | None:
    """Build one QuestionAnswer, or None when a required field is missing."""
    if not isinstance(raw, dict):
        return None
    if any(raw.get(name) is None for name in _REQUIRED_QUESTION_FIELDS):
        return None
    number = _positive_int(raw["question_number"])
    question_text = _optional_str(raw["question"])
    answer_text = _optional_str(raw["answer"])
    if number is None or question_text is None or answer_text is None:
        return None
    sub_part = _optional_str(raw.get("question_sub_part"))
    if sub_part is not None:
        sub_part = sub_part[:_MAX_SUB_PART_LENGTH]
    return QuestionAnswer(
        question_number=number,
        question_text=question_text,
        answer_text=answer_text,
        question_sub_part=sub_part,
        has_image=raw.get("has_image") is True,
    )


def _positive_int(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        number = raw
    elif isinstance(raw, str) and raw.strip().isdigit():
        number = int(raw.strip())
    else:
        return None
    return number if 1 <= number <= _MAX_INTEGER else None


def _optional_str(raw: Any) -> str | None:
    if raw is None or isinstance(raw, (dict, list)):
        return None
    value = str(raw).strip()
    return value or None


def _column_str(raw: Any) -> str | None:
    value = _optional_str(raw)
    return value[:_MAX_COLUMN_LENGTH] if value is not None else None
