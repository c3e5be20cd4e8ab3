from dataclasses import dataclass, field
from typing import Literal

from idscan.extraction.models import ExtractionResult
from idscan.images.models import SourceImage

BatchStatus = Literal["pending", "running", "completed", "cancelled"]


@dataclass(frozen=True)
class BatchProgress:
    """Progress snapshot delivered after every finished item."""

    completed: int
    total: int
    percentage: int
    current_file: str

    def to_dict(self) -> dict[str, object]:
        return {
            "completed": self.completed,
            "total": self.total,
            "percentage": self.percentage,
            "currentFile": self.current_file,
        }


@dataclass
class BatchItemResult:
    """Outcome of one batch item, written to its original index."""

    index: int
    success: bool
    file_name: str
    data: dict[str, object] | None = None
    error: str | None = None
    error_kind: str | None = None
    attempts: int = 1
    extraction: ExtractionResult | None = field(default=None, repr=False)

    @classmethod
    def from_extraction(
        cls, index: int, result: ExtractionResult, attempts: int = 1
    ) -> "BatchItemResult":
        return cls(
            index=index,
            success=result.success,
            file_name=result.file_name,
            data=result.record.to_dict() if result.record is not None else None,
            error=result.error_message,
            error_kind=result.failure_kind,
            attempts=attempts,
            extraction=result,
        )

    @classmethod
    def failure(
        cls, index: int, file_name: str, error: str, error_kind: str, attempts: int = 1
    ) -> "BatchItemResult":
        return cls(
            index=index,
            success=False,
            file_name=file_name,
            error=error,
            error_kind=error_kind,
            attempts=attempts,
        )

    def to_dict(self) -> dict[str, object]:
        if self.success:
            return {"success": True, "data": self.data, "fileName": self.file_name}
        return {
            "success": False,
            "error": self.error,
            "errorKind": self.error_kind,
            "fileName": self.file_name,
        }


@dataclass(frozen=True)
class BatchSummary:
    total: int
    successful: int
    failed: int
    cancelled: int
    total_time_ms: float
    average_time_ms: float

    def to_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "totalTime": round(self.total_time_ms, 2),
            "averageTime": round(self.average_time_ms, 2),
        }


@dataclass
class BatchJob:
    """Mutable state of one orchestration call."""

    images: list[SourceImage]
    concurrency_limit: int
    correlation_id: str | None = None
    status: BatchStatus = "pending"
    completed: int = 0
    results: list[BatchItemResult | None] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.results = [None] * len(self.images)

    @property
    def total(self) -> int:
        return len(self.images)

    @property
    def percentage(self) -> int:
        return round(self.completed / self.total * 100) if self.total else 100

    def record(self, item: BatchItemResult) -> None:
        """Write an item into its slot and advance the completed counter."""
        if self.results[item.index] is not None:
            raise ValueError(f"Result slot {item.index} already written")
        if self.completed >= self.total:
            raise ValueError("Batch job already has all results")
        self.results[item.index] = item
        self.completed += 1

    def fill(self, item: BatchItemResult) -> None:
        """Write a slot for an item that was never dispatched."""
        if self.results[item.index] is not None:
            raise ValueError(f"Result slot {item.index} already written")
        self.results[item.index] = item


@dataclass(frozen=True)
class BatchReport:
    status: BatchStatus
    results: list[BatchItemResult]
    summary: BatchSummary

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.status == "completed",
            "status": self.status,
            "results": [item.to_dict() for item in self.results],
            "summary": self.summary.to_dict(),
        }
