"""Builds the bounded prompt sent to the LLM for one uploaded exam."""

from pathlib import Path

from app.extraction.models import ExtractionFailed, ExtractionResult, NoText
from app.logging.logger import Log
from app.normalization.models import PromptVariant
from app.normalization.prompt_loader import load_json_schema, load_prompt_template
from app.processor.exceptions import NoTextExtractedError

DEFAULT_MAX_CHARS = 25000


def truncate_text(text: str, limit: int) -> str:
    """Cut text to at most ``limit`` characters. Anything beyond is lost."""
    if limit < 0:
        raise ValueError("limit must not be negative")
    return text[:limit]


class PromptBuilder:
    """Fills the prompt template of one variant with extracted exam text.

    The output is a pure function of the inputs. Text longer than
    ``max_chars`` is truncated before it is embedded, which keeps the request
    under the provider's token limit and silently drops the tail of very long
    papers.
    """

    def __init__(
        self,
        variant: PromptVariant = PromptVariant.QUESTIONS,
        *,
        max_chars: int = DEFAULT_MAX_CHARS,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
    ) -> None:
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")
        self._variant = variant
        self._max_chars = max_chars
        self._template = load_prompt_template(variant, prompt_template_path)
        self._json_schema = load_json_schema(variant, json_schema_path)

    @property
    def variant(self) -> PromptVariant:
        return self._variant

    def build(
        self,
        extraction: ExtractionResult,
        original_name: str,
        *,
        has_image: bool = False,
    ) -> str:
        """Render the prompt for a successful extraction.

        Raises:
            NoTextExtractedError: if the extraction produced no text. The
                message tells apart images that would need OCR.
            ValueError: if given a failed extraction.
        """
        if isinstance(extraction, ExtractionFailed):
            raise ValueError(
                f"Cannot build a prompt from a failed extraction: {extraction.reason}"
            )
        if isinstance(extraction, NoText):
            if has_image:
                raise NoTextExtractedError(
                    f"OCR text needed to generate answers for image {original_name}"
                )
            raise NoTextExtractedError(f"Could not extract text: {original_name}")
        return self._render(extraction.text, original_name)

    def _render(self, text: str, original_name: str) -> str:
        bounded = truncate_text(text, self._max_chars)
        if len(bounded) < len(text):
            Log.debug(
                f"Truncated exam text of {original_name} from {len(text)} "
                f"to {len(bounded)} chars"
            )
        return self._template.format(
            original_name=original_name,
            json_schema=self._json_schema,
            exam_text=bounded,
        )
