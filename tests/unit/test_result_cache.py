import pytest

from idscan.cache.result_cache import ResultCache
from idscan.extraction.exceptions import ProviderError
from idscan.extraction.models import CanonicalIdentityRecord, ExtractionResult


def _result(name: str = "JANE DOE") -> ExtractionResult:
    return ExtractionResult(success=True, record=CanonicalIdentityRecord(full_name=name))


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestLookup:
    def test_miss_then_hit(self) -> None:
        cache = ResultCache()
        result = _result()

        assert cache.get("fp", "v1") is None
        assert cache.put("fp", "v1", result) is True
        assert cache.get("fp", "v1") is result

        stats = cache.stats()
        assert (stats.hits, stats.misses, stats.size) == (1, 1, 1)
        assert stats.hit_rate == 0.5

    def test_schema_version_is_part_of_key(self) -> None:
        cache = ResultCache()
        cache.put("fp", "v1", _result())
        assert cache.get("fp", "v2") is None

    def test_hit_count_is_tracked(self) -> None:
        cache = ResultCache()
        cache.put("fp", "v1", _result())
        cache.get("fp", "v1")
        cache.get("fp", "v1")

        entry = cache.entry("fp", "v1")
        assert entry is not None
        assert entry.hit_count == 2


class TestWrites:
    def test_first_writer_wins(self) -> None:
        cache = ResultCache()
        first, second = _result("FIRST"), _result("SECOND")

        assert cache.put("fp", "v1", first) is True
        assert cache.put("fp", "v1", second) is False
        assert cache.get("fp", "v1") is first

    @pytest.mark.parametrize(
        "result",
        [
            ExtractionResult(success=False, error=ProviderError("boom")),
            ExtractionResult(success=True, record=None),
        ],
    )
    def test_failures_are_never_cached(self, result: ExtractionResult) -> None:
        cache = ResultCache()
        assert cache.put("fp", "v1", result) is False
        assert len(cache) == 0


class TestEviction:
    def test_least_recently_used_is_evicted(self) -> None:
        cache = ResultCache(max_entries=2)
        cache.put("a", "v1", _result())
        cache.put("b", "v1", _result())
        cache.get("a", "v1")
        cache.put("c", "v1", _result())

        assert cache.entry("b", "v1") is None
        assert cache.entry("a", "v1") is not None
        assert cache.entry("c", "v1") is not None
        assert cache.stats().evictions == 1

    def test_size_never_exceeds_bound(self) -> None:
        cache = ResultCache(max_entries=3)
        for i in range(10):
            cache.put(f"fp{i}", "v1", _result())
        assert len(cache) == 3

    def test_invalid_bound(self) -> None:
        with pytest.raises(ValueError):
            ResultCache(max_entries=0)


class TestExpiry:
    def test_entry_expires_after_ttl(self) -> None:
        clock = FakeClock()
        cache = ResultCache(ttl_seconds=10, clock=clock)
        cache.put("fp", "v1", _result())

        clock.now += 9
        assert cache.get("fp", "v1") is not None
        clock.now += 1
        assert cache.get("fp", "v1") is None
        assert len(cache) == 0

    def test_expired_entry_can_be_replaced(self) -> None:
        clock = FakeClock()
        cache = ResultCache(ttl_seconds=10, clock=clock)
        cache.put("fp", "v1", _result("OLD"))
        clock.now += 30
        replacement = _result("NEW")

        assert cache.put("fp", "v1", replacement) is True
        assert cache.get("fp", "v1") is replacement

    def test_zero_ttl_disables_expiry(self) -> None:
        clock = FakeClock()
        cache = ResultCache(ttl_seconds=0, clock=clock)
        cache.put("fp", "v1", _result())
        clock.now += 10**6
        assert cache.get("fp", "v1") is not None


class TestClearing:
    def test_clear_keeps_counters(self) -> None:
        cache = ResultCache()
        cache.put("fp", "v1", _result())
        cache.get("fp", "v1")
        cache.clear()

        assert len(cache) == 0
        assert cache.stats().hits == 1

    def test_reset_zeroes_counters(self) -> None:
        cache = ResultCache()
        cache.get("fp", "v1")
        cache.reset()
        assert cache.stats().misses == 0
