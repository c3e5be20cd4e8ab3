"""Flattens a CanonicalIdentityRecord into the storage-side customer shape.

Normalization is advisory. ``merge_advice`` only reports what may be written;
persisting is the caller's decision.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from idscan.extraction.models import CanonicalIdentityRecord
from idscan.logging.logger import Log

PROVENANCE_KEYS = (
    "ocr_provider",
    "ocr_model",
    "ocr_extracted_at",
    "ocr_confidence",
    "ocr_cached",
    "id_scan_url",
)

LICENCE_DOCUMENT_TYPES = frozenset(
    {"driver_license", "driver_licence", "driving_license", "driving_licence"}
)


@dataclass(frozen=True)
class MergeAdvice:
    """Fields that may be written, and the ones held back."""

    updates: dict[str, Any] = field(default_factory=dict)
    conflicts: dict[str, tuple[Any, Any]] = field(default_factory=dict)

    @property
    def has_updates(self) -> bool:
        return bool(self.updates)


class FieldNormalizer:
    """Maps canonical identity fields onto flattened storage fields."""

    # Storage field -> canonical fields tried in order; first non-empty wins.
    STORAGE_FIELD_SOURCES: ClassVar[dict[str, tuple[str, ...]]] = {
        "full_name": ("full_name", "raw_name"),
        "raw_name": ("raw_name",),
        "given_name": ("given_name",),
        "family_name": ("family_name",),
        "first_name": ("first_name", "given_name"),
        "last_name": ("last_name", "family_name"),
        "middle_name": ("middle_name",),
        "date_of_birth": ("date_of_birth",),
        "place_of_birth": ("place_of_birth",),
        "id_number": ("document_number",),
        "document_number": ("document_number",),
        "licence_issue_date": ("issue_date",),
        "licence_expiry_date": ("expiry_date",),
        "issue_date": ("issue_date",),
        "expiry_date": ("expiry_date",),
        "nationality": ("nationality", "country"),
        "country": ("country",),
        "gender": ("gender",),
        "issuing_authority": ("issuing_authority",),
        "mrz": ("mrz",),
        "document_type": ("document_type",),
        "address": ("address",),
        "city": ("city",),
        "postal_code": ("postal_code",),
    }

    def __init__(self, default_nationality: str = "") -> None:
        self._default_nationality = default_nationality.strip() or None

    def normalize(
        self, record: CanonicalIdentityRecord, *, image_url: str | None = None
    ) -> dict[str, Any]:
        """Produce the flattened, provenance-stamped storage record."""
        values = record.to_dict()
        flat: dict[str, Any] = {
            target: _first_present(values, sources)
            for target, sources in self.STORAGE_FIELD_SOURCES.items()
        }
        flat["licence_number"] = (
            record.document_number if self.is_licence(record.document_type) else None
        )
        if flat["nationality"] is None:
            flat["nationality"] = self._default_nationality

        flat["ocr_provider"] = record.provider or None
        flat["ocr_model"] = record.model or None
        flat["ocr_extracted_at"] = (
            record.extracted_at.isoformat() if record.extracted_at is not None else None
        )
        flat["ocr_confidence"] = record.confidence_estimate
        flat["ocr_cached"] = record.cached
        if image_url:
            flat["id_scan_url"] = image_url
        return flat

    @staticmethod
    def is_licence(document_type: str | None) -> bool:
        if not document_type:
            return False
        normalized = document_type.strip().lower().replace(" ", "_").replace("-", "_")
        return normalized in LICENCE_DOCUMENT_TYPES

    def merge_advice(
        self, existing: Mapping[str, Any], incoming: Mapping[str, Any]
    ) -> MergeAdvice:
        """Decide which incoming fields may be written over ``existing``.

        Empty existing fields are always fillable. A differing existing value
        is only replaced when the incoming record reports a strictly higher
        ``ocr_confidence``; otherwise the pair is reported as a conflict.
        """
        existing_confidence = _confidence(existing)
        incoming_confidence = _confidence(incoming)
        may_overwrite = (
            incoming_confidence is not None
            and existing_confidence is not None
            and incoming_confidence > existing_confidence
        )

        updates: dict[str, Any] = {}
        conflicts: dict[str, tuple[Any, Any]] = {}
        for name, value in incoming.items():
            if name in PROVENANCE_KEYS or _is_empty(value):
                continue
            current = existing.get(name)
            if _is_empty(current):
                updates[name] = value
            elif current != value:
                if may_overwrite:
                    updates[name] = value
                else:
                    conflicts[name] = (current, value)

        if updates:
            for name in PROVENANCE_KEYS:
                if name in incoming:
                    updates[name] = incoming[name]
        if conflicts:
            Log.info(
                f"Merge kept {len(conflicts)} existing fields",
                fields=",".join(sorted(conflicts)),
            )
        return MergeAdvice(updates=updates, conflicts=conflicts)


def _first_present(values: Mapping[str, Any], sources: tuple[str, ...]) -> Any:
    for name in sources:
        value = values.get(name)
        if not _is_empty(value):
            return value
    return None


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _confidence(values: Mapping[str, Any]) -> float | None:
    raw = values.get("ocr_confidence")
    if raw is None:
        raw = values.get("confidence_estimate")
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None
