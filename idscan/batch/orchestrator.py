"""Bounded-concurrency batch extraction.

Images are split into fixed-size groups. Groups run one after another; the
items of a group run concurrently and are awaited together. Each result is
written to the slot of its original index, so output order never depends on
completion order.
"""

import asyncio
import time
from collections.abc import Callable, Sequence

from idscan.batch.job_runner import JobRunner
from idscan.batch.models import (
    BatchItemResult,
    BatchJob,
    BatchProgress,
    BatchReport,
    BatchSummary,
)
from idscan.cache.result_cache import ResultCache
from idscan.config.settings import Settings
from idscan.images.models import SourceImage
from idscan.logging.logger import Log
from idscan.monitoring.performance_monitor import PerformanceMonitor
from idscan.processor.processor import build_processor

ProgressCallback = Callable[[BatchProgress], None]

CANCELLED_ERROR = "Batch cancelled before this item was dispatched"


class BatchOrchestrator:
    """Fans a list of images out under bounded concurrency."""

    def __init__(self, job_runner: JobRunner, group_size: int = 3) -> None:
        if group_size < 1:
            raise ValueError("group_size must be at least 1")
        self._job_runner = job_runner
        self._group_size = group_size

    async def run(
        self,
        images: Sequence[SourceImage],
        *,
        correlation_id: str | None = None,
        progress_callback: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> BatchReport:
        """Process every image; one item's failure never aborts the others.

        Cancellation is cooperative: once ``cancel_event`` is set no new group
        is dispatched, but a group already in flight runs to completion.
        """
        job = BatchJob(
            images=list(images),
            concurrency_limit=self._group_size,
            correlation_id=correlation_id,
        )
        Log.info(
            f"Starting batch of {job.total} images",
            group_size=self._group_size,
            correlation_id=correlation_id,
        )
        started = time.perf_counter()
        job.status = "running"

        for group_start in range(0, job.total, self._group_size):
            if cancel_event is not None and cancel_event.is_set():
                self._cancel_remaining(job, group_start)
                break
            group = job.images[group_start : group_start + self._group_size]
            await asyncio.gather(
                *(
                    self._run_item(job, group_start + offset, image, progress_callback)
                    for offset, image in enumerate(group)
                )
            )
        else:
            job.status = "completed"

        report = self._build_report(job, (time.perf_counter() - started) * 1000)
        Log.info(
            f"Batch finished: {report.summary.successful}/{job.total} successful",
            status=job.status,
            total_time_ms=round(report.summary.total_time_ms, 2),
        )
        return report

    async def _run_item(
        self,
        job: BatchJob,
        index: int,
        image: SourceImage,
        progress_callback: ProgressCallback | None,
    ) -> None:
        item = await self._job_runner.run(index, image, job.correlation_id)
        job.record(item)
        if progress_callback is None:
            return
        progress = BatchProgress(
            completed=job.completed,
            total=job.total,
            percentage=job.percentage,
            current_file=image.file_name,
        )
        try:
            progress_callback(progress)
        except Exception as exc:
            Log.warning(f"Progress callback failed: {exc}")

    def _cancel_remaining(self, job: BatchJob, first_index: int) -> None:
        job.status = "cancelled"
        Log.info(
            f"Batch cancelled, {job.total - first_index} images not dispatched",
            correlation_id=job.correlation_id,
        )
        for index in range(first_index, job.total):
            job.fill(
                BatchItemResult.failure(
                    index,
                    job.images[index].file_name,
                    CANCELLED_ERROR,
                    "cancelled",
                    attempts=0,
                )
            )

    @staticmethod
    def _build_report(job: BatchJob, total_time_ms: float) -> BatchReport:
        results = [item for item in job.results if item is not None]
        if len(results) != job.total:
            raise ValueError("Batch finished with unwritten result slots")
        successful = sum(1 for item in results if item.success)
        cancelled = sum(1 for item in results if item.error_kind == "cancelled")
        summary = BatchSummary(
            total=job.total,
            successful=successful,
            failed=job.total - successful,
            cancelled=cancelled,
            total_time_ms=total_time_ms,
            average_time_ms=total_time_ms / job.total if job.total else 0.0,
        )
        return BatchReport(status=job.status, results=results, summary=summary)


def build_orchestrator(
    settings: Settings,
    monitor: PerformanceMonitor | None = None,
    cache: ResultCache | None = None,
) -> BatchOrchestrator:
    """Build a BatchOrchestrator over a fully wired Processor."""
    processor = build_processor(settings, monitor=monitor, cache=cache)
    job_runner = JobRunner(processor, max_retries=settings.batch_max_retries)
    return BatchOrchestrator(job_runner, group_size=settings.batch_group_size)
