import hashlib
import posixpath
import uuid
from dataclasses import replace

from app.database.repositories.exam_repository import ExamRepository
from app.logging.logger import Log
from app.normalization.models import NormalizedExamRecord, QuestionAnswer
from app.processor.models import UploadedDocument
from app.processor.pipeline import PipelineContext
from app.rendering.answer_sheet import AnswerSheetRenderer
from app.rendering.exceptions import ArtifactRenderError
from app.storage.file_storage import FileStorage

# image columns are VARCHAR(255); room is left for the directory and uuid prefix
_MAX_IMAGE_BASENAME = 200


def source_key_for(document: UploadedDocument) -> str:
    """Idempotency key of an upload: SHA-256 of its storage key."""
    return hashlib.sha256(document.storage_key.encode("utf-8")).hexdigest()


def answer_sheet_key(source_key: str, index: int | str) -> str:
    return f"{FileStorage.EXAM_ANSWERS_DIRECTORY}/{source_key}-{index}.pdf"


class ExamPersister:
    """Maps normalized records onto storage rows and writes them.

    Copies question images and renders answer sheets to the public disk
    first, recording every file it creates on the context so a failed run
    can remove them, then inserts all exams of the run in one transaction.
    """

    def __init__(
        self,
        exam_repo: ExamRepository,
        storage: FileStorage,
        renderer: AnswerSheetRenderer,
    ) -> None:
        self._exam_repo = exam_repo
        self._storage = storage
        self._renderer = renderer

    def persist(self, context: PipelineContext) -> list[int]:
        """Store the context's records. Returns the new exam ids.

        A run whose upload already has stored exams inserts nothing, so a
        retried job never duplicates records.

        Raises:
            ArtifactRenderError: if an answer sheet cannot be rendered or stored.
        """
        document = context.document
        source_key = source_key_for(document)
        if self._exam_repo.exists_for_source(source_key):
            Log.warning(
                f"Exams for {document.original_name} ({document.storage_key}) "
                "already stored, skipping insert"
            )
            return []

        processing_time = round(context.elapsed_seconds(), 3)
        records = [
            self._map_record(context, index, record, source_key, processing_time)
            for index, record in enumerate(context.records)
        ]
        exam_ids = self._exam_repo.insert_exams(records, source_key=source_key)
        Log.info(
            f"Successfully processed and saved {len(exam_ids)} exam(s) for: "
            f"{document.original_name}"
        )
        return exam_ids

    def _map_record(
        self,
        context: PipelineContext,
        index: int,
        record: NormalizedExamRecord,
        source_key: str,
        processing_time: float,
    ) -> NormalizedExamRecord:
        questions = [self._attach_image(context, q) for q in record.questions]
        answers_ref = record.answers_artifact_ref
        if record.generated_answers:
            answers_ref = self._store_answer_sheet(context, index, record, source_key)
        image_ref = record.image_ref
        if context.document.public_image_path and image_ref is None:
            image_ref = self._copy_public_image(context)
        return replace(
            record,
            questions=questions,
            answers_artifact_ref=answers_ref,
            image_ref=image_ref,
            processing_time=processing_time,
        )

    def _attach_image(self, context: PipelineContext, question: QuestionAnswer) -> QuestionAnswer:
        if not question.has_image or not context.document.public_image_path:
            return question
        image_key = self._copy_public_image(context)
        if image_key is not None:
            Log.info(
                f"Saved image for question {question.question_number} of "
                f"{context.document.original_name} to: {image_key}"
            )
        return replace(question, image_ref=image_key)

    def _copy_public_image(self, context: PipelineContext) -> str | None:
        source = context.document.public_image_path
        if source is None:
            return None
        public = self._storage.public
        if not public.exists(source):
            Log.warning(f"Image file not found at public path: {source}")
            return None
        unique_name = f"{uuid.uuid4()}_{posixpath.basename(source)[-_MAX_IMAGE_BASENAME:]}"
        target = f"{FileStorage.EXAM_IMAGES_DIRECTORY}/{unique_name}"
        public.copy(source, target)
        context.generated_artifacts.append(target)
        return target

    def _store_answer_sheet(
        self,
        context: PipelineContext,
        index: int,
        record: NormalizedExamRecord,
        source_key: str,
    ) -> str:
        pdf_bytes = self._renderer.render(record)
        key = answer_sheet_key(source_key, index)
        try:
            self._storage.public.write_bytes(key, pdf_bytes)
        except OSError as exc:
            raise ArtifactRenderError(f"Failed to store answer sheet {key}: {exc}") from exc
        context.generated_artifacts.append(key)
        Log.info(f"Rendered answer sheet for {record.exam_name} to: {key}")
        return key
