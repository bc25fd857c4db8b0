from app.normalization.models import NormalizedExamRecord, PromptVariant, QuestionAnswer
from app.normalization.prompt_builder import PromptBuilder
from app.normalization.response_normalizer import ResponseNormalizer

__all__ = [
    "NormalizedExamRecord",
    "PromptBuilder",
    "PromptVariant",
    "QuestionAnswer",
    "ResponseNormalizer",
]
