from app.config.settings import Settings
from app.database.models import JobRecord
from app.database.repositories.job_repository import ABANDONED_RUN_MESSAGE, JobRepository
from app.logging.logger import Log
from app.processor.exceptions import is_retryable
from app.processor.models import UploadedDocument
from app.processor.processor import Processor


class JobRunner:
    """Run one job, catch exceptions, and apply retry logic.

    Nothing raised by a job, its bookkeeping or its failure callback leaves
    ``run``; the poll loop keeps going regardless of how one job ends.
    """

    def __init__(
        self,
        processor: Processor,
        job_repo: JobRepository,
        settings: Settings,
    ) -> None:
        self._processor = processor
        self._job_repo = job_repo
        self._settings = settings

    def run(self, job: JobRecord) -> None:
        """Execute a single job with error handling."""
        Log.info(f"Running job {job.id} (attempt {job.attempts + 1})")
        document = UploadedDocument.from_job(job)
        try:
            self._processor.process(document, job.id)
            self._job_repo.mark_done(job.id)
        except Exception as exc:
            self._handle_failure(job, document, exc)
            return
        Log.info(f"Job {job.id} completed successfully")

    def fail_abandoned(self, job: JobRecord) -> None:
        """Failure callback for a job whose worker was killed on its last attempt.

        The job row is already marked failed by the stale-job sweep.
        """
        document = UploadedDocument.from_job(job)
        Log.error(
            f"Job {job.id} permanently failed: its run for {document.original_name} "
            f"({document.storage_key}) was killed on the last attempt"
        )
        self._run_failure_callback(job, document, job.error_message or ABANDONED_RUN_MESSAGE)

    def _handle_failure(self, job: JobRecord, document: UploadedDocument, exc: Exception) -> None:
        """Retry retryable errors until max attempts, otherwise fail for good."""
        message = str(exc) or type(exc).__name__
        Log.error(f"Job {job.id} failed: {message}")
        try:
            if not is_retryable(exc):
                self._fail_permanently(job, document, message)
                Log.error(
                    f"Job {job.id} permanently failed: {type(exc).__name__} is not retryable"
                )
            elif job.attempts + 1 >= self._settings.max_job_attempts:
                self._fail_permanently(job, document, message)
                Log.error(f"Job {job.id} permanently failed after {job.attempts + 1} attempts")
            else:
                self._job_repo.increment_attempts(job.id, message)
                Log.warning(f"Job {job.id} will be retried (attempt {job.attempts + 1})")
        except Exception as handling_exc:
            Log.error(
                f"Could not record the failure of job {job.id} for "
                f"{document.original_name} ({document.storage_key}): {handling_exc}",
                exc_info=True,
            )

    def _fail_permanently(self, job: JobRecord, document: UploadedDocument, message: str) -> None:
        self._job_repo.mark_failed(job.id, message)
        self._run_failure_callback(job, document, message)

    def _run_failure_callback(
        self, job: JobRecord, document: UploadedDocument, message: str
    ) -> None:
        try:
            self._processor.fail_permanently(document, job.id, message)
        except Exception as exc:
            Log.error(
                f"Failure callback of job {job.id} for {document.original_name} "
                f"({document.storage_key}) raised: {exc}",
                exc_info=True,
            )
