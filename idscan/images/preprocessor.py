import io
from typing import ClassVar

from PIL import Image, UnidentifiedImageError

from idscan.extraction.exceptions import ImageValidationError
from idscan.images.file_loader import mime_type_for_name
from idscan.images.models import PreparedImage, SourceImage
from idscan.logging.logger import Log


class ImagePreprocessor:
    """Normalizes encoding and size of an image for transmission.

    Images whose longest edge is within the target pass through byte-for-byte,
    so preparing a compliant image is idempotent.
    """

    DEFAULT_MIME_TYPE: ClassVar[str] = "image/jpeg"
    SUPPORTED_MIME_TYPES: ClassVar[frozenset[str]] = frozenset(
        {"image/jpeg", "image/png", "image/webp"}
    )
    _MIME_ALIASES: ClassVar[dict[str, str]] = {
        "image/jpg": "image/jpeg",
        "image/pjpeg": "image/jpeg",
    }

    def __init__(self, max_edge_px: int = 2400, jpeg_quality: float = 0.85) -> None:
        self._max_edge_px = max_edge_px
        self._jpeg_quality = max(0.8, min(1.0, jpeg_quality))

    def resolve_mime_type(self, image: SourceImage) -> str:
        """Declared type if valid, else the file extension, else JPEG."""
        declared = self._normalize_content_type(image.content_type)
        if declared in self.SUPPORTED_MIME_TYPES:
            return declared
        return mime_type_for_name(image.file_name) or self.DEFAULT_MIME_TYPE

    def prepare(self, image: SourceImage) -> PreparedImage:
        """Return the transmission payload, downsampling oversized images.

        Raises:
            ImageValidationError: if the bytes cannot be decoded.
        """
        mime_type = self.resolve_mime_type(image)
        try:
            with Image.open(io.BytesIO(image.data)) as img:
                width, height = img.size
                if max(width, height) <= self._max_edge_px:
                    return PreparedImage(
                        data=image.data, mime_type=mime_type, width=width, height=height
                    )
                return self._downsample(img, image.file_name)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
            raise ImageValidationError(f"Cannot decode image '{image.file_name}': {exc}") from exc

    def _downsample(self, img: Image.Image, file_name: str) -> PreparedImage:
        original_size = img.size
        converted = img.convert("RGB")
        converted.thumbnail((self._max_edge_px, self._max_edge_px), Image.Resampling.LANCZOS)
        buf = io.BytesIO()
        converted.save(buf, format="JPEG", quality=round(self._jpeg_quality * 100), optimize=True)
        Log.info(
            "Image downsampled",
            file=file_name,
            original=f"{original_size[0]}x{original_size[1]}",
            target=f"{converted.width}x{converted.height}",
        )
        return PreparedImage(
            data=buf.getvalue(),
            mime_type="image/jpeg",
            width=converted.width,
            height=converted.height,
            resized=True,
        )

    def _normalize_content_type(self, content_type: str | None) -> str:
        if not content_type:
            return ""
        normalized = content_type.split(";", 1)[0].strip().lower()
        return self._MIME_ALIASES.get(normalized, normalized)
