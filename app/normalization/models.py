from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum


class PromptVariant(StrEnum):
    """Output contract requested from the model."""

    QUESTIONS = "questions"
    ANSWER_KEY = "answer_key"


class ResponseShape(StrEnum):
    """Top-level shape the prompt variant asks the model for."""

    EXAM_LIST = "exam_list"
    SINGLE = "single"


RESPONSE_SHAPES: dict[PromptVariant, ResponseShape] = {
    PromptVariant.QUESTIONS: ResponseShape.EXAM_LIST,
    PromptVariant.ANSWER_KEY: ResponseShape.SINGLE,
}


@dataclass(frozen=True)
class QuestionAnswer:
    """One question of an exam and the answer generated for it."""

    question_number: int
    question_text: str
    answer_text: str
    question_sub_part: str | None = None
    has_image: bool = False
    image_ref: str | None = None


@dataclass(frozen=True)
class NormalizedExamRecord:
    """Structured result for one exam found in an uploaded document."""

    exam_name: str
    examiner: str | None = None
    subject: str | None = None
    class_name: str | None = None
    term: int | None = None
    year: str | None = None
    curriculum: str | None = None
    type: str | None = None
    processing_time: float | None = None
    questions: list[QuestionAnswer] = field(default_factory=list)
    generated_answers: str | None = None
    answers_artifact_ref: str | None = None
    image_ref: str | None = None


def question_sort_key(question: QuestionAnswer) -> tuple[int, int, str]:
    """Order by number, then sub-part; a missing sub-part comes first."""
    sub_part = question.question_sub_part
    if sub_part is None:
        return (question.question_number, 0, "")
    return (question.question_number, 1, sub_part)


def sort_questions(questions: Iterable[QuestionAnswer]) -> list[QuestionAnswer]:
    return sorted(questions, key=question_sort_key)
