import asyncio
from typing import ClassVar

from idscan.cache.result_cache import ResultCache
from idscan.extraction.exceptions import (
    ImageValidationError,
    NormalizationWarning,
    ProviderError,
)
from idscan.extraction.models import ExtractionRequest
from idscan.extraction.strategy import ProviderStrategy
from idscan.images.preprocessor import ImagePreprocessor
from idscan.images.validator import ImageValidator
from idscan.logging.logger import Log
from idscan.parsing.repair import parse_provider_text
from idscan.parsing.validator import validate_and_build
from idscan.processor.pipeline import PipelineContext, PipelineStep


class ValidateImageStep(PipelineStep):
    name: ClassVar[str] = "validate"

    def __init__(self, validator: ImageValidator) -> None:
        self._validator = validator

    async def run(self, context: PipelineContext) -> PipelineContext:
        report = await asyncio.to_thread(self._validator.validate, context.image)
        context.validation = report
        if not report.is_valid:
            raise ImageValidationError(
                f"Cannot read image '{context.image.file_name}': {report.error}"
            )
        if report.recommendations:
            Log.info(
                f"Image {context.image.file_name} scored {report.score}",
                recommendations="; ".join(report.recommendations),
            )
        return context


class CacheLookupStep(PipelineStep):
    name: ClassVar[str] = "cache_lookup"

    def __init__(self, cache: ResultCache) -> None:
        self._cache = cache

    async def run(self, context: PipelineContext) -> PipelineContext:
        context.cached_result = self._cache.get(
            context.image.fingerprint, context.schema_version
        )
        if context.cached_result is not None:
            Log.info(
                f"Cache hit for {context.image.file_name}",
                fingerprint=context.image.fingerprint[:12],
            )
        return context


class PreprocessImageStep(PipelineStep):
    name: ClassVar[str] = "preprocess"

    def __init__(self, preprocessor: ImagePreprocessor) -> None:
        self._preprocessor = preprocessor

    async def run(self, context: PipelineContext) -> PipelineContext:
        context.prepared = await asyncio.to_thread(self._preprocessor.prepare, context.image)
        return context


class ExtractStep(PipelineStep):
    """Asks each configured strategy in order until one answers."""

    name: ClassVar[str] = "extract"

    def __init__(self, strategies: list[ProviderStrategy]) -> None:
        if not strategies:
            raise ValueError("At least one provider strategy is required")
        self._strategies = strategies

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.prepared is None:
            raise ValueError("PipelineContext.prepared must be set before extraction")
        errors: list[ProviderError] = []
        for strategy in self._strategies:
            request = ExtractionRequest(
                image=context.prepared,
                schema_version=context.schema_version,
                strategy=strategy.name,
                correlation_id=context.correlation_id,
            )
            try:
                context.raw_result = await strategy.extract(request)
                return context
            except ProviderError as exc:
                errors.append(exc)
                Log.warning(
                    f"Provider {strategy.name} failed for {context.image.file_name}",
                    error=exc,
                    diagnostic=exc.diagnostic,
                )
        raise errors[-1]


class ParseStep(PipelineStep):
    name: ClassVar[str] = "parse"

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.raw_result is None:
            raise ValueError("PipelineContext.raw_result must be set before parsing")
        raw = context.raw_result
        parsed = parse_provider_text(raw.text)
        record, warnings = validate_and_build(
            parsed.data,
            raw_text=raw.text,
            provider=raw.provider,
            model=raw.model,
        )
        if raw.truncated:
            warnings.append(NormalizationWarning("Provider output was truncated by the output limit"))
        context.record = record
        context.warnings.extend(warnings)
        for warning in warnings:
            Log.warning(f"Extraction warning for {context.image.file_name}: {warning}")
        return context
