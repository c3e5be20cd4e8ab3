"""Content-addressed memoization of validated extraction results.

Keys are exact-byte fingerprints plus the schema version. Concurrent batch
items sharing a fingerprint are not coalesced: each may call the provider,
and the first successful writer populates the entry. Later writers for a
live key are ignored.
"""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable

from idscan.cache.models import CacheEntry, CacheStats
from idscan.extraction.models import ExtractionResult
from idscan.logging.logger import Log

CacheKey = tuple[str, str]


class ResultCache:
    """Size-bounded LRU cache with optional TTL."""

    def __init__(
        self,
        max_entries: int = 200,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._ttl_seconds = ttl_seconds or None
        self._clock = clock
        self._entries: OrderedDict[CacheKey, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, fingerprint: str, schema_version: str) -> ExtractionResult | None:
        """Exact-match lookup; a hit refreshes the entry's LRU position."""
        key = (fingerprint, schema_version)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_expired(entry):
                del self._entries[key]
                entry = None
            if entry is None:
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            entry.hit_count += 1
            self._hits += 1
            return entry.value

    def put(self, fingerprint: str, schema_version: str, result: ExtractionResult) -> bool:
        """Store a successful result. Returns False when nothing was written."""
        if not self._is_cacheable(result):
            return False
        key = (fingerprint, schema_version)
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None and not self._is_expired(existing):
                return False
            self._entries[key] = CacheEntry(
                fingerprint=fingerprint,
                schema_version=schema_version,
                value=result,
                inserted_at=self._clock(),
            )
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                Log.debug("Cache entry evicted", fingerprint=evicted_key[0][:12])
            return True

    def entry(self, fingerprint: str, schema_version: str) -> CacheEntry | None:
        """Inspect an entry without touching counters or LRU order."""
        with self._lock:
            return self._entries.get((fingerprint, schema_version))

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._entries),
                max_entries=self._max_entries,
                evictions=self._evictions,
            )

    def clear(self) -> None:
        """Drop all entries, keeping counters."""
        with self._lock:
            self._entries.clear()

    def reset(self) -> None:
        """Drop all entries and zero every counter."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_expired(self, entry: CacheEntry) -> bool:
        if self._ttl_seconds is None:
            return False
        return self._clock() - entry.inserted_at >= self._ttl_seconds

    @staticmethod
    def _is_cacheable(result: ExtractionResult) -> bool:
        return (
            result.success
            and result.error is None
            and result.record is not None
            and result.record.non_null_count() > 0
        )
