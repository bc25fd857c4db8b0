from pathlib import Path
from unittest.mock import MagicMock

from app.database.models import JobRecord
from app.database.repositories.exam_repository import ExamRepository
from app.extraction.base import BaseTextExtractor
from app.extraction.extractor import DocumentTextExtractor
from app.extraction.recognizer import NullTextRecognizer
from app.llm.exceptions import ConfigurationError, TransportError
from app.normalization.exceptions import ResponseStructureError
from app.processor.exceptions import NoTextExtractedError, StorageError
from app.processor.models import DocumentFormat, UploadedDocument
from app.processor.pipeline import RUN_STAGES, PipelineStage, PipelineStep
from app.processor.processor import Processor
from app.processor.steps import DiscardArtifactsStep, ExtractTextStep, PermanentFailureStep
from app.storage.file_storage import FileStorage
from app.storage.local_disk import LocalDisk
from app.worker.job_runner import JobRunner


def _make_runner(
    max_attempts: int = 3,
) -> tuple[JobRunner, MagicMock, MagicMock]:
    """Create a JobRunner with mocked dependencies."""
    mock_processor = MagicMock()
    mock_repo = MagicMock()
    settings = MagicMock(max_job_attempts=max_attempts)
    runner = JobRunner(mock_processor, mock_repo, settings)
    return runner, mock_processor, mock_repo


def _make_job(attempts: int = 0) -> JobRecord:
    return JobRecord(
        id=1,
        storage_key="uploads/abc.pdf",
        original_name="math.pdf",
        declared_format="pdf",
        status="processing",
        attempts=attempts,
    )


_DOCUMENT = UploadedDocument("uploads/abc.pdf", "math.pdf", DocumentFormat.PDF)


class TestSuccessfulProcessing:
    def test_calls_processor_with_document(self) -> None:
        runner, mock_processor, _repo = _make_runner()
        runner.run(_make_job())
        mock_processor.process.assert_called_once_with(_DOCUMENT, 1)

    def test_marks_job_done(self) -> None:
        runner, mock_processor, mock_repo = _make_runner()
        runner.run(_make_job())
        mock_repo.mark_done.assert_called_once_with(1)
        mock_processor.fail_permanently.assert_not_called()


class TestRetryableFailure:
    def test_below_max_increments_attempts(self) -> None:
        runner, mock_processor, mock_repo = _make_runner(max_attempts=3)
        mock_processor.process.side_effect = TransportError("timed out")

        runner.run(_make_job(attempts=0))

        mock_repo.increment_attempts.assert_called_once_with(1, "timed out")
        mock_repo.mark_failed.assert_not_called()
        mock_repo.mark_done.assert_not_called()
        mock_processor.fail_permanently.assert_not_called()

    def test_unknown_error_is_retried(self) -> None:
        runner, mock_processor, mock_repo = _make_runner()
        mock_processor.process.side_effect = RuntimeError("connection reset")

        runner.run(_make_job())

        mock_repo.increment_attempts.assert_called_once()

    def test_last_attempt_fails_permanently(self) -> None:
        runner, mock_processor, mock_repo = _make_runner(max_attempts=3)
        mock_processor.process.side_effect = TransportError("timed out")

        runner.run(_make_job(attempts=2))

        mock_repo.mark_failed.assert_called_once_with(1, "timed out")
        mock_processor.fail_permanently.assert_called_once_with(_DOCUMENT, 1, "timed out")
        mock_repo.increment_attempts.assert_not_called()


class TestPermanentFailure:
    def test_malformed_reply_is_not_retried(self) -> None:
        runner, mock_processor, mock_repo = _make_runner()
        mock_processor.process.side_effect = ResponseStructureError(
            "AI response structure invalid"
        )

        runner.run(_make_job(attempts=0))

        mock_repo.mark_failed.assert_called_once_with(1, "AI response structure invalid")
        mock_processor.fail_permanently.assert_called_once()
        mock_repo.increment_attempts.assert_not_called()

    def test_no_text_is_not_retried(self) -> None:
        runner, mock_processor, mock_repo = _make_runner()
        mock_processor.process.side_effect = NoTextExtractedError("Could not extract text")
        runner.run(_make_job())
        mock_repo.mark_failed.assert_called_once()

    def test_missing_credentials_are_not_retried(self) -> None:
        runner, mock_processor, mock_repo = _make_runner()
        mock_processor.process.side_effect = ConfigurationError("Gemini API key missing")
        runner.run(_make_job())
        mock_repo.mark_failed.assert_called_once_with(1, "Gemini API key missing")


class TestBookkeepingFailures:
    def test_mark_done_error_is_handled_as_job_failure(self) -> None:
        runner, _processor, mock_repo = _make_runner()
        mock_repo.mark_done.side_effect = RuntimeError("connection lost")

        runner.run(_make_job())

        mock_repo.increment_attempts.assert_called_once_with(1, "connection lost")

    def test_mark_failed_error_does_not_escape(self) -> None:
        runner, mock_processor, mock_repo = _make_runner()
        mock_processor.process.side_effect = ResponseStructureError("bad reply")
        mock_repo.mark_failed.side_effect = RuntimeError("connection lost")

        runner.run(_make_job())

    def test_failure_callback_error_does_not_escape(self) -> None:
        runner, mock_processor, mock_repo = _make_runner()
        mock_processor.process.side_effect = ResponseStructureError("bad reply")
        mock_processor.fail_permanently.side_effect = StorageError("outside root")

        runner.run(_make_job())

        mock_repo.mark_failed.assert_called_once_with(1, "bad reply")

    def test_storage_key_outside_root_fails_job_without_escaping(self, tmp_path: Path) -> None:
        storage = FileStorage(LocalDisk(tmp_path / "private"), LocalDisk(tmp_path / "public"))
        exam_repo = MagicMock(spec=ExamRepository)
        exam_repo.exists_for_source.return_value = False
        extractor = DocumentTextExtractor(
            storage.private,
            MagicMock(spec=BaseTextExtractor),
            MagicMock(spec=BaseTextExtractor),
            NullTextRecognizer(),
        )
        passthrough = MagicMock(spec=PipelineStep)
        passthrough.run.side_effect = lambda context: context
        steps: dict[PipelineStage, PipelineStep] = {stage: passthrough for stage in RUN_STAGES}
        steps[PipelineStage.EXTRACTING] = ExtractTextStep(extractor)
        processor = Processor(
            steps,
            failed_step=DiscardArtifactsStep(storage),
            permanent_failure_step=PermanentFailureStep(storage, exam_repo),
        )
        job_repo = MagicMock()
        runner = JobRunner(processor, job_repo, MagicMock(max_job_attempts=3))
        job = _make_job()
        job.storage_key = "../escape.pdf"

        runner.run(job)

        job_repo.mark_failed.assert_called_once()
        assert job_repo.mark_failed.call_args.args[0] == 1
        passthrough.run.assert_not_called()


class TestFailAbandoned:
    def test_runs_failure_callback_with_stored_message(self) -> None:
        runner, mock_processor, mock_repo = _make_runner()
        job = _make_job(attempts=3)
        job.status = "failed"
        job.error_message = "Run was killed before finishing and no attempts are left"

        runner.fail_abandoned(job)

        mock_processor.fail_permanently.assert_called_once_with(
            _DOCUMENT, 1, "Run was killed before finishing and no attempts are left"
        )
        mock_repo.mark_failed.assert_not_called()

    def test_callback_error_does_not_escape(self) -> None:
        runner, mock_processor, _repo = _make_runner()
        mock_processor.fail_permanently.side_effect = RuntimeError("disk gone")

        runner.fail_abandoned(_make_job(attempts=3))
