import time
from dataclasses import replace

from idscan.cache.result_cache import ResultCache
from idscan.config.settings import Settings
from idscan.extraction.exceptions import ExtractionError
from idscan.extraction.factory import ProviderFactory
from idscan.extraction.models import CANONICAL_SCHEMA_VERSION, ExtractionResult
from idscan.extraction.strategy import ProviderStrategy
from idscan.images.models import SourceImage
from idscan.images.preprocessor import ImagePreprocessor
from idscan.images.validator import ImageValidator
from idscan.logging.logger import Log
from idscan.monitoring.performance_monitor import PerformanceMonitor, StepTiming
from idscan.processor.pipeline import PipelineContext, PipelineStep
from idscan.processor.steps import (
    CacheLookupStep,
    ExtractStep,
    ParseStep,
    PreprocessImageStep,
    ValidateImageStep,
)


class Processor:
    """Runs the single-image extraction pipeline.

    Pipeline: validate -> cache lookup -> preprocess -> extract -> parse -> cache store.
    A cache hit skips everything after the lookup.
    """

    def __init__(
        self,
        *,
        validator: ImageValidator,
        preprocessor: ImagePreprocessor,
        strategies: list[ProviderStrategy],
        cache: ResultCache,
        monitor: PerformanceMonitor,
        schema_version: str = CANONICAL_SCHEMA_VERSION,
    ) -> None:
        self._cache = cache
        self._monitor = monitor
        self._schema_version = schema_version
        self._lookup_steps = [ValidateImageStep(validator), CacheLookupStep(cache)]
        self._extraction_steps = [
            PreprocessImageStep(preprocessor),
            ExtractStep(strategies),
            ParseStep(),
        ]

    @property
    def cache(self) -> ResultCache:
        return self._cache

    @property
    def monitor(self) -> PerformanceMonitor:
        return self._monitor

    async def process(
        self, image: SourceImage, correlation_id: str | None = None
    ) -> ExtractionResult:
        """Extract one image. Typed failures are returned, not raised."""
        Log.info(f"Processing image {image.file_name}", correlation_id=correlation_id)
        started = time.perf_counter()
        context = PipelineContext(
            image=image,
            correlation_id=correlation_id,
            schema_version=self._schema_version,
        )
        timings: list[StepTiming] = []
        try:
            for step in self._lookup_steps:
                context = await self._run_step(step, context, timings)
            if context.cached_result is not None:
                result = self._from_cache(context)
            else:
                for step in self._extraction_steps:
                    context = await self._run_step(step, context, timings)
                result = self._success(context)
                self._cache.put(
                    image.fingerprint,
                    self._schema_version,
                    replace(result, warnings=list(result.warnings)),
                )
        except ExtractionError as exc:
            result = self._failure(context, exc)

        result.duration_ms = (time.perf_counter() - started) * 1000
        self._monitor.record_call(
            result.duration_ms,
            success=result.success,
            cached=result.cached,
            truncated=result.finish_reason == "truncated" and not result.cached,
            provider=context.raw_result.provider if context.raw_result else "",
            steps=timings,
            file_size=image.size_bytes,
            quality_score=context.validation.score if context.validation else None,
        )
        if result.success:
            Log.info(
                f"Extracted {image.file_name}",
                cached=result.cached,
                duration_ms=round(result.duration_ms, 2),
            )
        else:
            Log.error(
                f"Extraction failed for {image.file_name}: {result.error}",
                kind=result.failure_kind,
            )
        return result

    @staticmethod
    async def _run_step(
        step: PipelineStep, context: PipelineContext, timings: list[StepTiming]
    ) -> PipelineContext:
        started = time.perf_counter()
        try:
            return await step.run(context)
        finally:
            timings.append(StepTiming(step.name, (time.perf_counter() - started) * 1000))

    def _success(self, context: PipelineContext) -> ExtractionResult:
        if context.raw_result is None or context.record is None:
            raise ValueError("PipelineContext.record must be set before building a result")
        return ExtractionResult(
            success=True,
            file_name=context.image.file_name,
            record=context.record,
            raw_text=context.raw_result.text,
            finish_reason=context.raw_result.finish_reason,
            warnings=list(context.warnings),
            validation=context.validation,
            correlation_id=context.correlation_id,
        )

    def _from_cache(self, context: PipelineContext) -> ExtractionResult:
        cached = context.cached_result
        if cached is None or cached.record is None:
            raise ValueError("PipelineContext.cached_result must hold a record")
        return replace(
            cached,
            file_name=context.image.file_name,
            record=replace(cached.record, cached=True),
            cached=True,
            warnings=list(cached.warnings),
            validation=context.validation,
            correlation_id=context.correlation_id,
        )

    def _failure(self, context: PipelineContext, exc: ExtractionError) -> ExtractionResult:
        raw = context.raw_result
        return ExtractionResult(
            success=False,
            file_name=context.image.file_name,
            raw_text=raw.text if raw else "",
            finish_reason=raw.finish_reason if raw else None,
            error=exc,
            warnings=list(context.warnings),
            validation=context.validation,
            correlation_id=context.correlation_id,
        )


def build_processor(
    settings: Settings,
    monitor: PerformanceMonitor | None = None,
    cache: ResultCache | None = None,
) -> Processor:
    """Build a Processor with all required adapters."""
    if cache is None:
        cache = ResultCache(
            max_entries=settings.cache_max_entries,
            ttl_seconds=settings.cache_ttl_seconds,
        )
    if monitor is None:
        monitor = PerformanceMonitor(max_samples=settings.monitor_max_samples)
    return Processor(
        validator=ImageValidator(),
        preprocessor=ImagePreprocessor(
            max_edge_px=settings.preprocess_max_edge_px,
            jpeg_quality=settings.preprocess_jpeg_quality,
        ),
        strategies=ProviderFactory.create_strategies(settings),
        cache=cache,
        monitor=monitor,
    )
