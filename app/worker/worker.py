import time

from app.config.settings import Settings
from app.database.connection import get_connection
from app.database.models import JobRecord
from app.database.repositories.job_repository import JobRepository
from app.logging.logger import Log
from app.worker.job_runner import JobRunner


class Worker:
    """Claims exam jobs one at a time and hands them to the job runner.

    Each poll first returns jobs orphaned by a killed worker to the queue.
    An idle poll sleeps for ``job_poll_interval_seconds``.
    """

    def __init__(
        self,
        job_repo: JobRepository,
        job_runner: JobRunner,
        settings: Settings,
    ) -> None:
        self._job_repo = job_repo
        self._job_runner = job_runner
        self._settings = settings

    def run(self, max_jobs: int | None = None) -> int:
        """Poll until interrupted, or until ``max_jobs`` jobs have run.

        Returns the number of jobs dispatched.
        """
        Log.info(
            f"Exam worker started (poll every {self._settings.job_poll_interval_seconds}s)"
        )
        dispatched = 0
        try:
            while max_jobs is None or dispatched < max_jobs:
                if self._poll_once():
                    dispatched += 1
        except KeyboardInterrupt:
            Log.info("Exam worker interrupted, shutting down")
        Log.info(f"Exam worker stopped after {dispatched} job(s)")
        return dispatched

    def _poll_once(self) -> bool:
        self._reap_stale_jobs()
        job = self._try_claim_job()
        if job is None:
            Log.debug("Queue empty, sleeping")
            time.sleep(self._settings.job_poll_interval_seconds)
            return False
        try:
            self._job_runner.run(job)
        except Exception as exc:
            Log.error(
                f"Job {job.id} for {job.original_name} ({job.storage_key}) "
                f"escaped the job runner: {exc}",
                exc_info=True,
            )
        return True

    def _reap_stale_jobs(self) -> None:
        """Deal with jobs left locked by a killed worker.

        Jobs with attempts left go back to the queue. The rest are failed and
        get their failure callback here, since no run will reach it.
        """
        stale_after = self._settings.stale_job_after_seconds
        try:
            with get_connection() as conn:
                exhausted = self._job_repo.fail_exhausted_stale(conn, stale_after)
                requeued = self._job_repo.requeue_stale(conn, stale_after)
        except Exception as exc:
            Log.warning(f"Could not sweep stale jobs, will retry: {exc}")
            return
        if requeued:
            Log.warning(f"Requeued {requeued} stale job(s) left by a killed run")
        for job in exhausted:
            self._job_runner.fail_abandoned(job)

    def _try_claim_job(self) -> JobRecord | None:
        """Claim the oldest pending job.

        Database errors are logged and treated as an empty queue.
        """
        try:
            with get_connection() as conn:
                return self._job_repo.claim_next_job(conn)
        except Exception as exc:
            Log.warning(f"Could not claim a job, will retry: {exc}")
            return None
