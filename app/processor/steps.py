from app.database.repositories.exam_repository import ExamRepository
from app.extraction.exceptions import TextExtractionError
from app.extraction.extractor import DocumentTextExtractor
from app.extraction.models import ExtractionFailed
from app.llm.client_base import BaseLlmClient
from app.logging.logger import Log
from app.normalization.models import ResponseShape
from app.normalization.prompt_builder import PromptBuilder
from app.normalization.response_normalizer import ResponseNormalizer
from app.processor.exam_persister import ExamPersister, answer_sheet_key, source_key_for
from app.processor.exceptions import StorageError
from app.processor.pipeline import PipelineContext, PipelineStep
from app.storage.file_storage import FileStorage


class ExtractTextStep(PipelineStep):
    def __init__(self, extractor: DocumentTextExtractor) -> None:
        self._extractor = extractor

    def run(self, context: PipelineContext) -> PipelineContext:
        result = self._extractor.extract(context.document)
        if isinstance(result, ExtractionFailed):
            if result.source_missing:
                raise StorageError(result.reason)
            raise TextExtractionError(result.reason)
        context.extraction = result
        return context


class BuildPromptStep(PipelineStep):
    def __init__(self, prompt_builder: PromptBuilder) -> None:
        self._prompt_builder = prompt_builder

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.extraction is None:
            raise ValueError("PipelineContext.extraction must be set before prompting")
        context.prompt = self._prompt_builder.build(
            context.extraction,
            context.document.original_name,
            has_image=context.document.public_image_path is not None,
        )
        Log.debug(f"Prompt for {context.document.original_name}:\n{context.prompt}")
        return context


class CallLlmStep(PipelineStep):
    def __init__(self, client: BaseLlmClient) -> None:
        self._client = client

    def run(self, context: PipelineContext) -> PipelineContext:
        if not context.prompt:
            raise ValueError("PipelineContext.prompt must be set before calling the LLM")
        context.raw_response = self._client.complete(context.prompt, expect_json=True)
        Log.info(
            f"LLM answered with {len(context.raw_response)} bytes for "
            f"{context.document.original_name}"
        )
        return context


class NormalizeResponseStep(PipelineStep):
    def __init__(
        self,
        normalizer: ResponseNormalizer,
        shape: ResponseShape = ResponseShape.EXAM_LIST,
    ) -> None:
        self._normalizer = normalizer
        self._shape = shape

    def run(self, context: PipelineContext) -> PipelineContext:
        context.records = self._normalizer.normalize(
            context.raw_response,
            context.document.original_name,
            self._shape,
        )
        return context


class PersistExamsStep(PipelineStep):
    def __init__(self, persister: ExamPersister) -> None:
        self._persister = persister

    def run(self, context: PipelineContext) -> PipelineContext:
        context.exam_ids = self._persister.persist(context)
        # stored exams now own the files generated for them
        context.generated_artifacts = []
        return context


class CleanupUploadStep(PipelineStep):
    """Deletes the temporary upload once its exams are stored.

    Question images and answer sheets live under their own names, so the
    uploaded public image is removed as well.
    """

    def __init__(self, storage: FileStorage) -> None:
        self._storage = storage

    def run(self, context: PipelineContext) -> PipelineContext:
        delete_upload(self._storage, context)
        Log.info(
            f"Processing time for {context.document.original_name}: "
            f"{context.elapsed_seconds():.2f} seconds"
        )
        return context


class DiscardArtifactsStep(PipelineStep):
    """Failure handler: removes files the failed run generated.

    The upload itself is kept so the job can be retried.
    """

    def __init__(self, storage: FileStorage) -> None:
        self._storage = storage

    def run(self, context: PipelineContext) -> PipelineContext:
        discard_artifacts(self._storage, context.generated_artifacts)
        context.generated_artifacts = []
        return context


class PermanentFailureStep(PipelineStep):
    """Explicit failure callback for a job that will not run again.

    Removes the upload and every answer sheet rendered for it, unless an
    earlier attempt already stored exams that reference those sheets.
    """

    def __init__(self, storage: FileStorage, exam_repo: ExamRepository) -> None:
        self._storage = storage
        self._exam_repo = exam_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        document = context.document
        Log.critical(
            f"Exam processing FAILED for file {document.original_name} "
            f"({document.storage_key}). Error: {context.error_message}"
        )
        source_key = source_key_for(document)
        leftovers: list[str] = []
        if not self._exam_repo.exists_for_source(source_key):
            leftovers = self._storage.public.glob(answer_sheet_key(source_key, index="*"))
        discard_artifacts(self._storage, [*context.generated_artifacts, *leftovers])
        context.generated_artifacts = []
        delete_upload(self._storage, context)
        return context


def delete_upload(storage: FileStorage, context: PipelineContext) -> None:
    document = context.document
    if document.public_image_path:
        if storage.public.delete(document.public_image_path):
            Log.info(f"Deleted temporary image file: {document.public_image_path}")
        return
    if storage.private.delete(document.storage_key):
        Log.info(f"Deleted temporary file: {document.storage_key}")


def discard_artifacts(storage: FileStorage, keys: list[str]) -> None:
    for key in dict.fromkeys(keys):
        try:
            if storage.public.delete(key):
                Log.info(f"Deleted generated artifact: {key}")
        except OSError as exc:
            Log.warning(f"Could not delete generated artifact {key}: {exc}")
