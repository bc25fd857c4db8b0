from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class JobRecord:
    """Represents a row from the exam_jobs table."""

    id: int
    storage_key: str
    original_name: str
    declared_format: str
    status: str
    attempts: int
    public_image_path: str | None = None
    error_message: str | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class QuestionRow:
    """Represents a row from the exam_question_answers table."""

    id: int
    exam_id: int
    question_number: int
    question: str
    answer: str
    question_sub_part: str | None = None
    image: str | None = None
    created_at: datetime | None = None


@dataclass
class ExamRow:
    """Represents a row from the exams table, with its questions attached."""

    id: int
    exam_name: str
    examiner: str | None = None
    subject: str | None = None
    class_name: str | None = None
    term: int | None = None
    year: str | None = None
    curriculum: str | None = None
    type: str | None = None
    processing_time: float | None = None
    answers: str | None = None
    image: str | None = None
    source_key: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    questions: list[QuestionRow] = field(default_factory=list)
