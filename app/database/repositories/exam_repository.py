from collections.abc import Sequence
from typing import Any

from psycopg.rows import dict_row

from app.database.connection import get_connection
from app.database.models import ExamRow, QuestionRow
from app.normalization.models import NormalizedExamRecord


class ExamRepository:
    """Database operations for the exams and exam_question_answers tables."""

    def exists_for_source(self, source_key: str) -> bool:
        """Whether exams were already stored for the upload with this key."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT 1 FROM exams WHERE source_key = %s LIMIT 1",
                    (source_key,),
                )
                return cur.fetchone() is not None

    def insert_exams(
        self,
        records: Sequence[NormalizedExamRecord],
        source_key: str | None = None,
    ) -> list[int]:
        """Insert exams with their questions in a single transaction.

        Either every exam and question of the run is stored or none is.
        Returns the new exam ids in input order.
        """
        exam_ids: list[int] = []
        with get_connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    for record in records:
                        cur.execute(
                            """
                            INSERT INTO exams
                                ("examName", examiner, subject, class, term, year,
                                 curriculum, type, processing_time, answers, image,
                                 source_key, created_at, updated_at)
                            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                                    NOW(), NOW())
                            RETURNING id
                            """,
                            (
                                record.exam_name,
                                record.examiner,
                                record.subject,
                                record.class_name,
                                record.term,
                                record.year,
                                record.curriculum,
                                record.type,
                                record.processing_time,
                                record.answers_artifact_ref,
                                record.image_ref,
                                source_key,
                            ),
                        )
                        row = cur.fetchone()
                        if row is None:
                            raise RuntimeError("INSERT INTO exams returned no id")
                        exam_id = int(row[0])
                        exam_ids.append(exam_id)
                        if record.questions:
                            cur.executemany(
                                """
                                INSERT INTO exam_question_answers
                                    (exam_id, question_number, question_sub_part,
                                     question, answer, image, created_at, updated_at)
                                VALUES (%s, %s, %s, %s, %s, %s, NOW(), NOW())
                                """,
                                [
                                    (
                                        exam_id,
                                        q.question_number,
                                        q.question_sub_part,
                                        q.question_text,
                                        q.answer_text,
                                        q.image_ref,
                                    )
                                    for q in record.questions
                                ],
                            )
        return exam_ids

    def list_recent(self, page: int = 1, per_page: int = 15) -> list[ExamRow]:
        """Newest-first page of exams with their questions attached."""
        if page < 1 or per_page < 1:
            raise ValueError("page and per_page must be positive")
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, "examName" AS exam_name, examiner, subject,
                           class AS class_name, term, year, curriculum, type,
                           processing_time, answers, image, source_key,
                           created_at, updated_at
                    FROM exams
                    ORDER BY created_at DESC, id DESC
                    LIMIT %s OFFSET %s
                    """,
                    (per_page, (page - 1) * per_page),
                )
                exam_rows = cur.fetchall()
                exams = [ExamRow(**row) for row in exam_rows]
                if not exams:
                    return []
                cur.execute(
                    """
                    SELECT id, exam_id, question_number, question_sub_part,
                           question, answer, image, created_at
                    FROM exam_question_answers
                    WHERE exam_id = ANY(%s)
                    ORDER BY exam_id, question_number,
                             question_sub_part COLLATE "C" ASC NULLS FIRST, id
                    """,
                    ([exam.id for exam in exams],),
                )
                question_rows = cur.fetchall()

        by_exam: dict[int, ExamRow] = {exam.id: exam for exam in exams}
        for row in question_rows:
            by_exam[row["exam_id"]].questions.append(self._to_question(row))
        return exams

    @staticmethod
    def _to_question(row: dict[str, Any]) -> QuestionRow:
        return QuestionRow(
            id=row["id"],
            exam_id=row["exam_id"],
            question_number=row["question_number"],
            question=row["question"],
            answer=row["answer"],
            question_sub_part=row["question_sub_part"],
            image=row["image"],
            created_at=row["created_at"],
        )
