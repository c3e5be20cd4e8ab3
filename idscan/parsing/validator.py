"""Validates parsed provider JSON and builds a CanonicalIdentityRecord."""

import re
from datetime import date, datetime, timezone
from typing import Any

from idscan.extraction.exceptions import NormalizationWarning, ParseError
from idscan.extraction.models import (
    CANONICAL_FIELDS,
    DATE_FIELDS,
    CanonicalIdentityRecord,
)
from idscan.logging.logger import Log

MIN_NON_NULL_FIELDS = 3

# Tried in order; the first group with any non-empty part wins.
FULL_NAME_FALLBACKS: tuple[tuple[str, ...], ...] = (
    ("first_name", "middle_name", "last_name"),
    ("given_name", "family_name"),
    ("raw_name",),
)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_valid_iso_date(value: str) -> bool:
    """Strict YYYY-MM-DD check: the value must survive parse and reserialize."""
    if not _ISO_DATE_RE.match(value):
        return False
    try:
        return date.fromisoformat(value).isoformat() == value
    except ValueError:
        return False


def validate_and_build(
    data: dict[str, Any],
    *,
    raw_text: str = "",
    provider: str = "",
    model: str = "",
    extracted_at: datetime | None = None,
) -> tuple[CanonicalIdentityRecord, list[NormalizationWarning]]:
    """Normalize parsed JSON into the canonical schema.

    Unknown keys are dropped and missing canonical keys become null. Invalid
    dates become null rather than failing the record.

    Raises:
        ParseError: if no full name can be derived.
    """
    values: dict[str, Any] = {name: _clean_value(name, data.get(name)) for name in CANONICAL_FIELDS}

    for name in DATE_FIELDS:
        value = values[name]
        if value is not None and not is_valid_iso_date(value):
            Log.debug("Discarding invalid date", field=name, value=value)
            values[name] = None

    if values["full_name"] is None:
        values["full_name"] = derive_full_name(values)
    if values["full_name"] is None:
        raise ParseError("No name could be extracted from the document", raw_text=raw_text)

    record = CanonicalIdentityRecord(
        **values,
        provider=provider,
        model=model,
        extracted_at=extracted_at or datetime.now(timezone.utc),
    )

    warnings: list[NormalizationWarning] = []
    non_null = record.non_null_count()
    if non_null < MIN_NON_NULL_FIELDS:
        warnings.append(
            NormalizationWarning(
                f"Only {non_null} fields extracted; the response may be truncated "
                "or the scan of poor quality"
            )
        )
    return record, warnings


def derive_full_name(values: dict[str, Any]) -> str | None:
    for group in FULL_NAME_FALLBACKS:
        parts = [values[name] for name in group if values.get(name)]
        if parts:
            return " ".join(parts)
    return None


def _clean_value(name: str, raw: Any) -> Any:
    if name == "confidence_estimate":
        return _clean_confidence(raw)
    if raw is None or isinstance(raw, (dict, list, bool)):
        return None
    if isinstance(raw, (int, float)):
        return str(raw)
    if not isinstance(raw, str):
        return None
    cleaned = raw.strip()
    if not cleaned or cleaned.lower() == "null":
        return None
    return cleaned


def _clean_confidence(raw: Any) -> float | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if value != value:  # NaN
        return None
    return max(0.0, min(1.0, value))
