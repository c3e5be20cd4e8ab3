"""Aggregates per-call timing and cache statistics into an optimization report.

Each call sample carries the durations of the pipeline steps it ran, the
warnings those steps raised and a 0-100 rating. The report adds the steps
that dominate recent calls on top of the aggregate figures.

The monitor only observes; nothing in the pipeline reads it to make a decision.
"""

import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import ClassVar, Literal

from idscan.cache.models import CacheStats

WarningKind = Literal["slow_processing", "large_file", "low_quality"]
Severity = Literal["high", "medium"]


@dataclass(frozen=True)
class StepTiming:
    name: str
    duration_ms: float


@dataclass(frozen=True)
class StepWarning:
    kind: WarningKind
    step: str
    message: str

    def to_dict(self) -> dict[str, object]:
        return {"type": self.kind, "step": self.step, "message": self.message}


@dataclass(frozen=True)
class Bottleneck:
    """A step that took a large share of one call's total duration."""

    step: str
    duration_ms: float
    share: float
    severity: Severity

    def to_dict(self) -> dict[str, object]:
        return {
            "step": self.step,
            "durationMs": round(self.duration_ms, 2),
            "percentage": round(self.share * 100, 1),
            "severity": self.severity,
        }


@dataclass(frozen=True)
class StepSummary:
    step: str
    average_ms: float
    occurrences: int

    def to_dict(self) -> dict[str, object]:
        return {
            "step": self.step,
            "averageDurationMs": round(self.average_ms, 2),
            "occurrences": self.occurrences,
        }


@dataclass(frozen=True)
class CallSample:
    """Timing and outcome of one single-image extraction."""

    duration_ms: float
    success: bool
    cached: bool = False
    truncated: bool = False
    provider: str = ""
    recorded_at: float = 0.0
    steps: tuple[StepTiming, ...] = ()
    warnings: tuple[StepWarning, ...] = ()
    rating: int = 100

    def bottlenecks(self) -> list[Bottleneck]:
        if self.duration_ms <= 0:
            return []
        found: list[Bottleneck] = []
        for step in self.steps:
            share = step.duration_ms / self.duration_ms
            if share > PerformanceMonitor.HIGH_BOTTLENECK_SHARE:
                found.append(Bottleneck(step.name, step.duration_ms, share, "high"))
            elif share > PerformanceMonitor.MEDIUM_BOTTLENECK_SHARE:
                found.append(Bottleneck(step.name, step.duration_ms, share, "medium"))
        return found


@dataclass(frozen=True)
class PerformanceReport:
    total_calls: int
    average_latency_ms: float
    cache_hit_rate: float
    error_rate: float
    truncations: int
    average_rating: float = 100.0
    step_averages_ms: dict[str, float] = field(default_factory=dict)
    top_bottlenecks: list[StepSummary] = field(default_factory=list)
    warnings: list[StepWarning] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "totalCalls": self.total_calls,
            "averageLatencyMs": round(self.average_latency_ms, 2),
            "cacheHitRate": round(self.cache_hit_rate, 4),
            "errorRate": round(self.error_rate, 4),
            "truncations": self.truncations,
            "averageRating": round(self.average_rating, 1),
            "stepAveragesMs": {
                name: round(value, 2) for name, value in self.step_averages_ms.items()
            },
            "topBottlenecks": [summary.to_dict() for summary in self.top_bottlenecks],
            "warnings": [warning.to_dict() for warning in self.warnings],
            "recommendations": list(self.recommendations),
        }


class PerformanceMonitor:
    """Process-wide aggregator, constructed explicitly and passed to its users.

    At most ``max_samples`` call samples are kept; the oldest are dropped first.
    """

    SLOW_AVERAGE_MS: ClassVar[float] = 5000.0
    HIGH_ERROR_RATE: ClassVar[float] = 0.1
    LOW_CACHE_HIT_RATE: ClassVar[float] = 0.3
    MIN_SAMPLES_FOR_CACHE_ADVICE: ClassVar[int] = 10

    SLOW_STEP_MS: ClassVar[float] = 5000.0
    LARGE_FILE_BYTES: ClassVar[int] = 5 * 1024 * 1024
    LOW_QUALITY_SCORE: ClassVar[int] = 60
    HIGH_BOTTLENECK_SHARE: ClassVar[float] = 0.4
    MEDIUM_BOTTLENECK_SHARE: ClassVar[float] = 0.25
    RECENT_SAMPLES: ClassVar[int] = 10
    TOP_BOTTLENECKS: ClassVar[int] = 5

    WARNING_RECOMMENDATIONS: ClassVar[dict[str, str]] = {
        "slow_processing": "Consider enabling image compression or reducing image size",
        "large_file": "Large files detected - automatic compression recommended",
        "low_quality": "Low quality image may affect extraction accuracy",
    }

    STATIC_RECOMMENDATIONS: ClassVar[tuple[str, ...]] = (
        "Use JPEG format for best compression",
        "Optimal image size: 1-3MB",
        "Recommended resolution: 1200x800 to 2400x1600",
        "Ensure good lighting and contrast",
        "Keep documents flat and properly oriented",
    )

    def __init__(
        self, clock: Callable[[], float] = time.time, max_samples: int = 1000
    ) -> None:
        if max_samples < 1:
            raise ValueError("max_samples must be at least 1")
        self._clock = clock
        self._max_samples = max_samples
        self._samples: list[CallSample] = []
        self._lock = threading.Lock()

    @property
    def max_samples(self) -> int:
        return self._max_samples

    def record_call(
        self,
        duration_ms: float,
        *,
        success: bool,
        cached: bool = False,
        truncated: bool = False,
        provider: str = "",
        steps: Iterable[StepTiming] = (),
        file_size: int = 0,
        quality_score: int | None = None,
    ) -> CallSample:
        step_timings = tuple(steps)
        warnings = tuple(self._step_warnings(step_timings, file_size, quality_score))
        sample = CallSample(
            duration_ms=duration_ms,
            success=success,
            cached=cached,
            truncated=truncated,
            provider=provider,
            recorded_at=self._clock(),
            steps=step_timings,
            warnings=warnings,
            rating=self._rate(duration_ms, len(warnings), success=success, cached=cached),
        )
        with self._lock:
            self._samples.append(sample)
            overflow = len(self._samples) - self._max_samples
            if overflow > 0:
                del self._samples[:overflow]
        return sample

    def samples(self) -> list[CallSample]:
        with self._lock:
            return list(self._samples)

    def report(self, cache_stats: CacheStats | None = None) -> PerformanceReport:
        samples = self.samples()
        total = len(samples)
        average = sum(s.duration_ms for s in samples) / total if total else 0.0
        errors = sum(1 for s in samples if not s.success)
        error_rate = errors / total if total else 0.0
        truncations = sum(1 for s in samples if s.truncated)
        average_rating = sum(s.rating for s in samples) / total if total else 100.0
        warnings = [warning for s in samples for warning in s.warnings]

        if cache_stats is not None:
            hit_rate = cache_stats.hit_rate
            lookups = cache_stats.hits + cache_stats.misses
        else:
            hits = sum(1 for s in samples if s.cached)
            hit_rate = hits / total if total else 0.0
            lookups = total

        recommendations: list[str] = []
        if average > self.SLOW_AVERAGE_MS:
            recommendations.append("Consider implementing more aggressive image compression")
        if error_rate > self.HIGH_ERROR_RATE:
            recommendations.append("High error rate detected - review image validation")
        if lookups >= self.MIN_SAMPLES_FOR_CACHE_ADVICE and hit_rate < self.LOW_CACHE_HIT_RATE:
            recommendations.append(
                "Low cache hit rate - consider increasing cache size or TTL"
            )
        if truncations:
            recommendations.append(
                f"{truncations} truncated responses - raise the output token budget"
            )
        for kind in dict.fromkeys(warning.kind for warning in warnings):
            recommendations.append(self.WARNING_RECOMMENDATIONS[kind])
        recommendations.extend(self.STATIC_RECOMMENDATIONS)

        return PerformanceReport(
            total_calls=total,
            average_latency_ms=average,
            cache_hit_rate=hit_rate,
            error_rate=error_rate,
            truncations=truncations,
            average_rating=average_rating,
            step_averages_ms={s.step: s.average_ms for s in self._summarize(samples)},
            top_bottlenecks=self._summarize(samples[-self.RECENT_SAMPLES :])[
                : self.TOP_BOTTLENECKS
            ],
            warnings=warnings,
            recommendations=recommendations,
        )

    def cleanup(self, older_than_seconds: float) -> int:
        """Drop samples recorded more than ``older_than_seconds`` ago."""
        cutoff = self._clock() - older_than_seconds
        with self._lock:
            kept = [s for s in self._samples if s.recorded_at >= cutoff]
            removed = len(self._samples) - len(kept)
            self._samples = kept
        return removed

    def reset(self) -> None:
        with self._lock:
            self._samples.clear()

    def _step_warnings(
        self,
        steps: tuple[StepTiming, ...],
        file_size: int,
        quality_score: int | None,
    ) -> list[StepWarning]:
        warnings = [
            StepWarning(
                "slow_processing",
                step.name,
                f"{step.name} took {step.duration_ms:.2f}ms",
            )
            for step in steps
            if step.duration_ms > self.SLOW_STEP_MS
        ]
        first_step = steps[0].name if steps else ""
        if file_size > self.LARGE_FILE_BYTES:
            warnings.append(
                StepWarning(
                    "large_file",
                    first_step,
                    f"Processing large file ({file_size / (1024 * 1024):.2f} MB)",
                )
            )
        if quality_score is not None and quality_score < self.LOW_QUALITY_SCORE:
            warnings.append(
                StepWarning(
                    "low_quality",
                    first_step,
                    f"Low image quality detected (score: {quality_score})",
                )
            )
        return warnings

    @staticmethod
    def _rate(duration_ms: float, warning_count: int, *, success: bool, cached: bool) -> int:
        rating = 100
        if duration_ms > 10000:
            rating -= 30
        elif duration_ms > 5000:
            rating -= 15
        elif duration_ms > 3000:
            rating -= 5
        rating -= warning_count * 10
        if not success:
            rating -= 50
        if cached:
            rating += 10
        return max(0, min(100, rating))

    @staticmethod
    def _summarize(samples: list[CallSample]) -> list[StepSummary]:
        """Average duration per step name, slowest first."""
        durations: dict[str, list[float]] = {}
        for sample in samples:
            for step in sample.steps:
                durations.setdefault(step.name, []).append(step.duration_ms)
        summaries = [
            StepSummary(name, sum(values) / len(values), len(values))
            for name, values in durations.items()
        ]
        return sorted(summaries, key=lambda s: s.average_ms, reverse=True)
