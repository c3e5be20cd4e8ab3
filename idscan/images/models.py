import base64
import hashlib
from dataclasses import dataclass, field
from functools import cached_property


@dataclass(frozen=True)
class SourceImage:
    """Raw image payload as received from the caller."""

    data: bytes = field(repr=False)
    file_name: str = ""
    content_type: str | None = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @cached_property
    def fingerprint(self) -> str:
        """SHA-256 of the exact bytes. No perceptual matching."""
        return hashlib.sha256(self.data).hexdigest()


@dataclass(frozen=True)
class ImageMetrics:
    """Measured properties of a decoded image."""

    width: int
    height: int
    file_size: int

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height else 0.0

    @property
    def resolution(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class ValidationReport:
    """Suitability score of an image before a provider call is spent on it."""

    is_valid: bool
    score: int
    metrics: ImageMetrics | None = None
    recommendations: list[str] = field(default_factory=list)
    estimated_processing_time: str = ""
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        metrics: dict[str, object] | None = None
        if self.metrics is not None:
            metrics = {
                "width": self.metrics.width,
                "height": self.metrics.height,
                "fileSize": self.metrics.file_size,
                "aspectRatio": round(self.metrics.aspect_ratio, 4),
                "resolution": self.metrics.resolution,
            }
        return {
            "isValid": self.is_valid,
            "score": self.score,
            "metrics": metrics,
            "recommendations": list(self.recommendations),
            "estimatedProcessingTime": self.estimated_processing_time,
            "error": self.error,
        }


@dataclass(frozen=True)
class PreparedImage:
    """Image payload ready for transmission to a provider."""

    data: bytes = field(repr=False)
    mime_type: str
    width: int
    height: int
    resized: bool = False

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"
