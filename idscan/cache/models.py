from dataclasses import dataclass

from idscan.extraction.models import ExtractionResult


@dataclass
class CacheEntry:
    """A validated extraction stored under (fingerprint, schema version)."""

    fingerprint: str
    schema_version: str
    value: ExtractionResult
    inserted_at: float
    hit_count: int = 0


@dataclass(frozen=True)
class CacheStats:
    """Counters exposed to the performance monitor."""

    hits: int
    misses: int
    size: int
    max_entries: int
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0
