import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum

from app.extraction.models import ExtractionResult
from app.normalization.models import NormalizedExamRecord
from app.processor.models import UploadedDocument


class PipelineStage(StrEnum):
    EXTRACTING = "extracting"
    PROMPTING = "prompting"
    CALLING = "calling"
    NORMALIZING = "normalizing"
    PERSISTING = "persisting"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"
    PERMANENTLY_FAILED = "permanently_failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STAGES


_TERMINAL_STAGES = frozenset(
    {PipelineStage.DONE, PipelineStage.FAILED, PipelineStage.PERMANENTLY_FAILED}
)

_TRANSITIONS: dict[PipelineStage, PipelineStage] = {
    PipelineStage.EXTRACTING: PipelineStage.PROMPTING,
    PipelineStage.PROMPTING: PipelineStage.CALLING,
    PipelineStage.CALLING: PipelineStage.NORMALIZING,
    PipelineStage.NORMALIZING: PipelineStage.PERSISTING,
    PipelineStage.PERSISTING: PipelineStage.CLEANING_UP,
    PipelineStage.CLEANING_UP: PipelineStage.DONE,
}

RUN_STAGES: tuple[PipelineStage, ...] = tuple(_TRANSITIONS)


def next_stage(stage: PipelineStage) -> PipelineStage:
    """Successor of a stage on the success path.

    Raises:
        ValueError: for terminal stages, which have no successor.
    """
    try:
        return _TRANSITIONS[stage]
    except KeyError:
        raise ValueError(f"Stage '{stage}' is terminal") from None


@dataclass(slots=True)
class PipelineContext:
    job_id: int
    document: UploadedDocument
    stage: PipelineStage = PipelineStage.EXTRACTING
    started_at: float = field(default_factory=time.perf_counter)
    extraction: ExtractionResult | None = None
    prompt: str = ""
    raw_response: str = ""
    records: list[NormalizedExamRecord] = field(default_factory=list)
    exam_ids: list[int] = field(default_factory=list)
    generated_artifacts: list[str] = field(default_factory=list)
    error_message: str = ""

    def elapsed_seconds(self) -> float:
        return time.perf_counter() - self.started_at


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
