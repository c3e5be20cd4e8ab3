import argparse
import asyncio
import json
import sys
import uuid
from collections.abc import Sequence

from idscan.batch.models import BatchProgress, BatchReport
from idscan.batch.orchestrator import build_orchestrator
from idscan.cache.result_cache import ResultCache
from idscan.config.settings import Settings
from idscan.images.file_loader import FileLoader
from idscan.images.models import SourceImage
from idscan.images.validator import ImageValidator
from idscan.logging.logger import Log
from idscan.monitoring.performance_monitor import PerformanceMonitor
from idscan.normalization.field_normalizer import FieldNormalizer

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="idscan",
        description="Extract structured identity data from scanned ID documents.",
    )
    parser.add_argument("images", nargs="+", help="Image files to process")
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Print image validation reports without calling a provider",
    )
    parser.add_argument(
        "--flatten",
        action="store_true",
        help="Add the storage-flattened record for each successful item",
    )
    parser.add_argument(
        "--report",
        action="store_true",
        help="Append the performance report",
    )
    return parser


def validate_images(images: Sequence[SourceImage]) -> tuple[dict[str, object], bool]:
    validator = ImageValidator()
    reports = [validator.validate(image) for image in images]
    output = [
        {"fileName": image.file_name, **report.to_dict()}
        for image, report in zip(images, reports)
    ]
    return {"validation": output}, all(report.is_valid for report in reports)


def _log_progress(progress: BatchProgress) -> None:
    Log.info(
        f"Progress {progress.completed}/{progress.total} ({progress.percentage}%)",
        file=progress.current_file,
    )


async def run_batch(
    settings: Settings,
    images: Sequence[SourceImage],
    *,
    flatten: bool = False,
    report: bool = False,
) -> tuple[dict[str, object], bool]:
    """Run the batch pipeline and build the printable output."""
    monitor = PerformanceMonitor(max_samples=settings.monitor_max_samples)
    cache = ResultCache(
        max_entries=settings.cache_max_entries,
        ttl_seconds=settings.cache_ttl_seconds,
    )
    orchestrator = build_orchestrator(settings, monitor=monitor, cache=cache)
    batch = await orchestrator.run(
        images,
        correlation_id=uuid.uuid4().hex,
        progress_callback=_log_progress,
    )
    output = batch.to_dict()
    if flatten:
        output["records"] = flatten_results(batch, FieldNormalizer(settings.default_nationality))
    if report:
        output["performance"] = monitor.report(cache.stats()).to_dict()
    return output, batch.summary.failed == 0


def flatten_results(
    batch: BatchReport, normalizer: FieldNormalizer
) -> list[dict[str, object] | None]:
    records: list[dict[str, object] | None] = []
    for item in batch.results:
        record = item.extraction.record if item.extraction is not None else None
        records.append(normalizer.normalize(record) if item.success and record else None)
    return records


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: load settings -> read images -> run the batch -> print JSON."""
    args = build_parser().parse_args(argv)
    try:
        settings = Settings()
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_FAILED
    Log.configure(settings.log_level, settings.log_payload_max_chars, stream=sys.stderr)

    loader = FileLoader()
    try:
        images = [loader.load(path) for path in args.images]
    except FileNotFoundError as exc:
        Log.error(str(exc))
        return EXIT_FAILED

    try:
        if args.validate_only:
            output, ok = validate_images(images)
        else:
            output, ok = asyncio.run(
                run_batch(settings, images, flatten=args.flatten, report=args.report)
            )
    except KeyboardInterrupt:
        Log.warning("Interrupted")
        return EXIT_INTERRUPTED
    except ValueError as exc:
        Log.error(f"Could not start extraction: {exc}")
        return EXIT_FAILED

    print(json.dumps(output, indent=2, ensure_ascii=False))
    return EXIT_OK if ok else EXIT_FAILED


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
