from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar

from idscan.extraction.exceptions import NormalizationWarning
from idscan.extraction.models import (
    CANONICAL_SCHEMA_VERSION,
    CanonicalIdentityRecord,
    ExtractionResult,
    RawResult,
)
from idscan.images.models import PreparedImage, SourceImage, ValidationReport


@dataclass(slots=True)
class PipelineContext:
    image: SourceImage
    correlation_id: str | None = None
    schema_version: str = CANONICAL_SCHEMA_VERSION
    validation: ValidationReport | None = None
    cached_result: ExtractionResult | None = None
    prepared: PreparedImage | None = None
    raw_result: RawResult | None = None
    record: CanonicalIdentityRecord | None = None
    warnings: list[NormalizationWarning] = field(default_factory=list)


class PipelineStep(ABC):
    name: ClassVar[str] = "step"

    @abstractmethod
    async def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
