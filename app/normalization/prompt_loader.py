from pathlib import Path

from app.normalization.exceptions import NormalizationError
from app.normalization.models import PromptVariant

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(variant: PromptVariant, path: Path | None = None) -> str:
    """Load the prompt template for a prompt variant.

    Args:
        variant: Which output contract the prompt asks for.
        path: Path to the prompt template file.
              Defaults to the bundled ``<variant>_prompt.txt``.

    Returns:
        The raw template string with ``{original_name}``, ``{json_schema}``
        and ``{exam_text}`` placeholders.

    Raises:
        NormalizationError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / f"{variant}_prompt.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise NormalizationError(f"Failed to load prompt template: {exc}") from exc


def load_json_schema(variant: PromptVariant, path: Path | None = None) -> str:
    """Load the JSON schema embedded in the prompt for a prompt variant.

    Raises:
        NormalizationError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / f"{variant}_schema.json"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise NormalizationError(f"Failed to load JSON schema: {exc}") from exc
