from collections.abc import Mapping

from app.config.settings import Settings
from app.database.repositories.exam_repository import ExamRepository
from app.extraction.docx_adapter import DocxAdapter
from app.extraction.extractor import DocumentTextExtractor
from app.extraction.factory import PdfExtractorFactory
from app.extraction.recognizer import NullTextRecognizer, TextRecognizer
from app.llm.config import LlmGatewayConfig
from app.llm.factory import LlmGatewayFactory
from app.logging.logger import Log
from app.normalization.models import RESPONSE_SHAPES
from app.normalization.prompt_builder import PromptBuilder
from app.normalization.response_normalizer import ResponseNormalizer
from app.processor.exam_persister import ExamPersister
from app.processor.models import UploadedDocument
from app.processor.pipeline import RUN_STAGES, PipelineContext, PipelineStage, PipelineStep, next_stage
from app.processor.steps import (
    BuildPromptStep,
    CallLlmStep,
    CleanupUploadStep,
    DiscardArtifactsStep,
    ExtractTextStep,
    NormalizeResponseStep,
    PermanentFailureStep,
    PersistExamsStep,
)
from app.rendering.answer_sheet import AnswerSheetRenderer
from app.storage.file_storage import FileStorage


class Processor:
    """Drives one upload through the pipeline state machine.

    Stages: extracting -> prompting -> calling -> normalizing -> persisting
    -> cleaning_up -> done. Any exception moves the run to ``failed``: the
    failed step discards generated files and the exception is re-raised for
    the job runner, which decides about retries.
    """

    def __init__(
        self,
        steps: Mapping[PipelineStage, PipelineStep],
        failed_step: PipelineStep,
        permanent_failure_step: PipelineStep,
    ) -> None:
        missing = [stage for stage in RUN_STAGES if stage not in steps]
        if missing:
            raise ValueError(f"No pipeline step registered for stages: {missing}")
        self._steps = dict(steps)
        self._failed_step = failed_step
        self._permanent_failure_step = permanent_failure_step

    def process(self, document: UploadedDocument, job_id: int) -> PipelineContext:
        """Run the full pipeline for an upload and return the finished context."""
        Log.info(
            f"Processing job {job_id} for file: {document.original_name} "
            f"({document.storage_key})"
        )
        context = PipelineContext(job_id=job_id, document=document)
        while not context.stage.is_terminal:
            context = self._advance(context)
        return context

    def fail_permanently(
        self,
        document: UploadedDocument,
        job_id: int,
        reason: str,
    ) -> PipelineContext:
        """Failure callback for a job that will not be retried."""
        context = PipelineContext(
            job_id=job_id,
            document=document,
            stage=PipelineStage.PERMANENTLY_FAILED,
            error_message=reason,
        )
        return self._permanent_failure_step.run(context)

    def _advance(self, context: PipelineContext) -> PipelineContext:
        stage = context.stage
        try:
            context = self._steps[stage].run(context)
        except KeyboardInterrupt:
            context.stage = PipelineStage.FAILED
            context.error_message = "interrupted"
            Log.warning(
                f"Job {context.job_id} interrupted at stage '{stage}' for "
                f"{context.document.original_name} ({context.document.storage_key})"
            )
            self._failed_step.run(context)
            raise
        except Exception as exc:
            context.stage = PipelineStage.FAILED
            context.error_message = str(exc) or type(exc).__name__
            Log.error(
                f"Job {context.job_id} failed at stage '{stage}' for "
                f"{context.document.original_name} ({context.document.storage_key}): "
                f"{context.error_message}",
                exc_info=True,
            )
            self._failed_step.run(context)
            raise
        context.stage = next_stage(stage)
        return context


def build_processor(
    settings: Settings,
    recognizer: TextRecognizer | None = None,
) -> Processor:
    """Build a Processor with all required adapters."""
    storage = FileStorage.from_settings(settings)
    exam_repo = ExamRepository()
    gateway_config = LlmGatewayConfig.from_settings(settings)
    extractor = DocumentTextExtractor(
        disk=storage.private,
        pdf_extractor=PdfExtractorFactory.create(settings),
        docx_extractor=DocxAdapter(),
        recognizer=recognizer or NullTextRecognizer(),
    )
    prompt_builder = PromptBuilder(
        gateway_config.prompt_variant,
        max_chars=settings.prompt_max_chars,
    )
    persister = ExamPersister(
        exam_repo=exam_repo,
        storage=storage,
        renderer=AnswerSheetRenderer(),
    )
    steps: dict[PipelineStage, PipelineStep] = {
        PipelineStage.EXTRACTING: ExtractTextStep(extractor),
        PipelineStage.PROMPTING: BuildPromptStep(prompt_builder),
        PipelineStage.CALLING: CallLlmStep(LlmGatewayFactory.create(gateway_config)),
        PipelineStage.NORMALIZING: NormalizeResponseStep(
            ResponseNormalizer(),
            RESPONSE_SHAPES[gateway_config.prompt_variant],
        ),
        PipelineStage.PERSISTING: PersistExamsStep(persister),
        PipelineStage.CLEANING_UP: CleanupUploadStep(storage),
    }
    return Processor(
        steps=steps,
        failed_step=DiscardArtifactsStep(storage),
        permanent_failure_step=PermanentFailureStep(storage, exam_repo),
    )
