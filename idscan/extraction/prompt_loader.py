import json
from pathlib import Path

from idscan.extraction.exceptions import ExtractionError
from idscan.extraction.models import CANONICAL_FIELDS

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(path: Path | None = None) -> str:
    """Load the extraction prompt template from a file.

    Args:
        path: Path to the prompt template file.
              Defaults to the bundled extraction_prompt.txt.

    Returns:
        The raw template string with a ``{field_template}`` placeholder.

    Raises:
        ExtractionError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "extraction_prompt.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ExtractionError(f"Failed to load prompt template: {exc}") from exc


def build_field_template(field_names: tuple[str, ...] = CANONICAL_FIELDS) -> str:
    """Compact JSON object with every canonical field set to null."""
    return json.dumps(dict.fromkeys(field_names), separators=(",", ":"))
