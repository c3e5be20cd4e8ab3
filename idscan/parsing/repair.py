"""Extracts a JSON object from raw provider text, repairing truncation.

Processing flow:
1. Greedy match from the first ``{`` to the last ``}`` and parse it.
2. On no match or a syntax error, take everything from the first ``{``,
   count braces and, when opens exceed closes, drop one trailing dangling
   comma and append exactly the missing ``}`` characters. Parse once more.
3. Anything still unparseable is a ParseError carrying the raw text.

Repair only ever appends closing braces. It never touches string content,
so a response cut off inside a string literal fails loudly.
"""

import json
import re
from dataclasses import dataclass
from typing import Any

from idscan.extraction.exceptions import ParseError
from idscan.logging.logger import Log

_GREEDY_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_TRAILING_COMMA_RE = re.compile(r",\s*$")


@dataclass(frozen=True)
class ParsedOutput:
    """A JSON object recovered from provider text."""

    data: dict[str, Any]
    repaired: bool = False


def repair_truncated_json(text: str) -> str | None:
    """Close unbalanced braces in text that starts at the first ``{``.

    Returns None when there is no object start or nothing to close.
    """
    start = text.find("{")
    if start == -1:
        return None
    candidate = text[start:]
    missing = candidate.count("{") - candidate.count("}")
    if missing <= 0:
        return None
    return _TRAILING_COMMA_RE.sub("", candidate) + "}" * missing


def parse_provider_text(raw: str) -> ParsedOutput:
    """Recover the JSON object embedded in provider text.

    Raises:
        ParseError: if no object can be recovered.
    """
    last_error: json.JSONDecodeError | None = None

    match = _GREEDY_OBJECT_RE.search(raw)
    if match is not None:
        try:
            return ParsedOutput(data=_require_object(json.loads(match.group(0)), raw))
        except json.JSONDecodeError as exc:
            last_error = exc

    repaired = repair_truncated_json(raw)
    if repaired is None:
        if last_error is not None:
            raise ParseError(
                f"Invalid JSON in provider output: {last_error}", raw_text=raw
            ) from last_error
        raise ParseError("No JSON object found in provider output", raw_text=raw)

    Log.warning("Truncated provider output detected, attempting repair", chars=len(raw))
    try:
        data = json.loads(repaired)
    except json.JSONDecodeError as exc:
        raise ParseError(
            f"Invalid JSON in provider output after repair: {exc}", raw_text=raw
        ) from exc
    Log.debug("Repaired provider output", repaired=repaired)
    return ParsedOutput(data=_require_object(data, raw), repaired=True)


def _require_object(parsed: Any, raw: str) -> dict[str, Any]:
    if not isinstance(parsed, dict):
        raise ParseError("Provider output must be a JSON object", raw_text=raw)
    return parsed
