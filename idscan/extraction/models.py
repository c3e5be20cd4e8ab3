from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from idscan.extraction.exceptions import ExtractionError, NormalizationWarning
from idscan.images.models import PreparedImage, ValidationReport

CANONICAL_SCHEMA_VERSION = "identity-v1"

CANONICAL_FIELDS: tuple[str, ...] = (
    "document_type",
    "country",
    "full_name",
    "raw_name",
    "given_name",
    "family_name",
    "first_name",
    "last_name",
    "middle_name",
    "document_number",
    "nationality",
    "date_of_birth",
    "gender",
    "expiry_date",
    "issue_date",
    "place_of_birth",
    "issuing_authority",
    "mrz",
    "confidence_estimate",
    "email",
    "phone",
    "address",
    "city",
    "postal_code",
)

DATE_FIELDS: tuple[str, ...] = ("date_of_birth", "issue_date", "expiry_date")

FinishReason = Literal["complete", "truncated"]


@dataclass(frozen=True)
class ExtractionRequest:
    """One provider call: the image, the schema it must fill, who is asked."""

    image: PreparedImage
    schema_version: str = CANONICAL_SCHEMA_VERSION
    strategy: str = ""
    correlation_id: str | None = None


@dataclass(frozen=True)
class RawResult:
    """Unparsed provider output."""

    text: str
    finish_reason: FinishReason = "complete"
    provider: str = ""
    model: str = ""

    @property
    def truncated(self) -> bool:
        return self.finish_reason == "truncated"


@dataclass(frozen=True)
class CanonicalIdentityRecord:
    """Validated identity document data plus provenance."""

    full_name: str
    document_type: str | None = None
    country: str | None = None
    raw_name: str | None = None
    given_name: str | None = None
    family_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    middle_name: str | None = None
    document_number: str | None = None
    nationality: str | None = None
    date_of_birth: str | None = None
    gender: str | None = None
    expiry_date: str | None = None
    issue_date: str | None = None
    place_of_birth: str | None = None
    issuing_authority: str | None = None
    mrz: str | None = None
    confidence_estimate: float | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None

    provider: str = ""
    model: str = ""
    extracted_at: datetime | None = None
    cached: bool = False

    def to_dict(self) -> dict[str, object]:
        """Canonical fields only, in schema order."""
        return {name: getattr(self, name) for name in CANONICAL_FIELDS}

    def non_null_count(self) -> int:
        return sum(1 for name in CANONICAL_FIELDS if getattr(self, name) is not None)


@dataclass
class ExtractionResult:
    """Outcome of a single-image extraction, successful or not."""

    success: bool
    file_name: str = ""
    record: CanonicalIdentityRecord | None = None
    raw_text: str = ""
    finish_reason: FinishReason | None = None
    error: ExtractionError | None = None
    warnings: list[NormalizationWarning] = field(default_factory=list)
    validation: ValidationReport | None = None
    cached: bool = False
    duration_ms: float = 0.0
    correlation_id: str | None = None

    @property
    def failure_kind(self) -> str | None:
        return self.error.kind if self.error is not None else None

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None
