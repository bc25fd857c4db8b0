from typing import Any

import psycopg
from psycopg.rows import dict_row

from app.database.connection import get_connection
from app.database.models import JobRecord

_JOB_COLUMNS = """
    id, storage_key, original_name, declared_format, public_image_path,
    status, attempts, error_message, locked_at, created_at, updated_at
"""

ABANDONED_RUN_MESSAGE = "Run was killed before finishing and no attempts are left"


class JobRepository:
    """Database operations for the exam_jobs table."""

    def __init__(self, max_attempts: int) -> None:
        self._max_attempts = max_attempts

    def enqueue(
        self,
        storage_key: str,
        original_name: str,
        declared_format: str,
        public_image_path: str | None = None,
    ) -> int:
        """Queue one pipeline run for a stored upload. Returns the job id."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO exam_jobs
                        (storage_key, original_name, declared_format, public_image_path)
                    VALUES (%s, %s, %s, %s)
                    RETURNING id
                    """,
                    (storage_key, original_name, declared_format, public_image_path),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError("INSERT INTO exam_jobs returned no id")
        return int(row[0])

    def claim_next_job(self, conn: psycopg.Connection[Any]) -> JobRecord | None:
        """Claim the next pending job using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_JOB_COLUMNS}
                FROM exam_jobs
                WHERE status = 'pending'
                  AND attempts < %s
                ORDER BY created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (self._max_attempts,),
            )
            row = cur.fetchone()

        if row is None:
            conn.commit()
            return None

        conn.execute(
            """
            UPDATE exam_jobs
            SET status = 'processing', locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        job = self._to_record(row)
        job.status = "processing"
        return job

    def fail_exhausted_stale(
        self, conn: psycopg.Connection[Any], stale_after_seconds: int
    ) -> list[JobRecord]:
        """Fail stale 'processing' jobs whose killed run was their last attempt.

        Returns the failed jobs so their failure callback can still run.
        """
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                UPDATE exam_jobs
                SET status = 'failed', attempts = attempts + 1, locked_at = NULL,
                    error_message = %s, updated_at = NOW()
                WHERE status = 'processing'
                  AND locked_at < NOW() - make_interval(secs => %s)
                  AND attempts + 1 >= %s
                RETURNING {_JOB_COLUMNS}
                """,
                (ABANDONED_RUN_MESSAGE, stale_after_seconds, self._max_attempts),
            )
            rows = cur.fetchall()
        conn.commit()
        return [self._to_record(row) for row in rows]

    def requeue_stale(self, conn: psycopg.Connection[Any], stale_after_seconds: int) -> int:
        """Return jobs stuck in 'processing' to pending, counting the lost attempt.

        A job stays locked forever when its worker was killed mid-run. Jobs
        without attempts left are handled by ``fail_exhausted_stale``.
        Returns the number of requeued jobs.
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE exam_jobs
                SET status = 'pending', attempts = attempts + 1,
                    locked_at = NULL, updated_at = NOW()
                WHERE status = 'processing'
                  AND locked_at < NOW() - make_interval(secs => %s)
                  AND attempts + 1 < %s
                """,
                (stale_after_seconds, self._max_attempts),
            )
            count = cur.rowcount
        conn.commit()
        return count

    def mark_done(self, job_id: int) -> None:
        """Mark a job as done."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE exam_jobs
                SET status = 'done', updated_at = NOW()
                WHERE id = %s
                """,
                (job_id,),
            )
            conn.commit()

    def mark_failed(self, job_id: int, error: str) -> None:
        """Mark a job as permanently failed."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE exam_jobs
                SET status = 'failed', error_message = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (error, job_id),
            )
            conn.commit()

    def increment_attempts(self, job_id: int, error: str | None = None) -> None:
        """Increment attempt count and return job to pending."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE exam_jobs
                SET attempts = attempts + 1, status = 'pending', error_message = %s,
                    locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (error, job_id),
            )
            conn.commit()

    def find_by_id(self, job_id: int) -> JobRecord | None:
        """Find a job by ID. Useful for tests."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_JOB_COLUMNS} FROM exam_jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return self._to_record(row)

    @staticmethod
    def _to_record(row: dict[str, Any]) -> JobRecord:
        return JobRecord(
            id=row["id"],
            storage_key=row["storage_key"],
            original_name=row["original_name"],
            declared_format=row["declared_format"],
            public_image_path=row["public_image_path"],
            status=row["status"],
            attempts=row["attempts"],
            error_message=row["error_message"],
            locked_at=row["locked_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
