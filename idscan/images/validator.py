"""Scores image suitability before a provider call is spent on it."""

import io

from PIL import Image, UnidentifiedImageError

from idscan.images.models import ImageMetrics, SourceImage, ValidationReport
from idscan.logging.logger import Log

LARGE_FILE_BYTES = 5 * 1024 * 1024
SLOW_FILE_BYTES = 2 * 1024 * 1024
MIN_RESOLUTION = 300_000
MAX_RESOLUTION = 8_000_000
MIN_ASPECT_RATIO = 0.5
MAX_ASPECT_RATIO = 2.0

INVALID_IMAGE_RECOMMENDATION = "Please provide a valid image file (JPEG, PNG, WebP)"
LARGE_FILE_RECOMMENDATION = (
    "Image is large (>5MB) - compression will be applied for faster processing"
)
LOW_RESOLUTION_RECOMMENDATION = "Low resolution detected - may affect OCR accuracy"
HIGH_RESOLUTION_RECOMMENDATION = (
    "Very high resolution - will be compressed for faster processing"
)
ASPECT_RATIO_RECOMMENDATION = (
    "Unusual aspect ratio - ensure document is properly oriented"
)


def read_dimensions(data: bytes) -> tuple[int, int]:
    """Decode image dimensions from raw bytes.

    Raises:
        ValueError: if the bytes are not a decodable image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise ValueError(f"Undecodable image: {exc}") from exc


class ImageValidator:
    """Scores an image from 0 to 100; only undecodable input is invalid."""

    def validate(self, image: SourceImage) -> ValidationReport:
        try:
            width, height = read_dimensions(image.data)
        except ValueError as exc:
            Log.warning("Image validation failed", file=image.file_name, error=exc)
            return ValidationReport(
                is_valid=False,
                score=0,
                recommendations=[INVALID_IMAGE_RECOMMENDATION],
                error="Invalid image file",
            )

        metrics = ImageMetrics(width=width, height=height, file_size=image.size_bytes)
        score = 100
        recommendations: list[str] = []

        if metrics.file_size > LARGE_FILE_BYTES:
            recommendations.append(LARGE_FILE_RECOMMENDATION)
            score -= 10
        if metrics.resolution < MIN_RESOLUTION:
            recommendations.append(LOW_RESOLUTION_RECOMMENDATION)
            score -= 20
        if metrics.resolution > MAX_RESOLUTION:
            recommendations.append(HIGH_RESOLUTION_RECOMMENDATION)
            score -= 5
        if not MIN_ASPECT_RATIO <= metrics.aspect_ratio <= MAX_ASPECT_RATIO:
            recommendations.append(ASPECT_RATIO_RECOMMENDATION)
            score -= 10

        report = ValidationReport(
            is_valid=True,
            score=max(0, min(100, score)),
            metrics=metrics,
            recommendations=recommendations,
            estimated_processing_time=self._estimate_processing_time(metrics.file_size),
        )
        Log.debug(
            "Image validated",
            file=image.file_name,
            score=report.score,
            width=width,
            height=height,
        )
        return report

    @staticmethod
    def _estimate_processing_time(file_size: int) -> str:
        if file_size > SLOW_FILE_BYTES:
            return "2-4 seconds"
        return "1-2 seconds"
