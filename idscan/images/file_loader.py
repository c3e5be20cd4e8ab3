from pathlib import Path

from idscan.images.models import SourceImage

EXTENSION_MIME_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


def mime_type_for_name(file_name: str) -> str | None:
    """Infer an image mime type from a file name extension."""
    return EXTENSION_MIME_TYPES.get(Path(file_name).suffix.lower())


class FileLoader:
    """Reads image files from disk into SourceImage payloads."""

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root

    def load(self, path: Path | str) -> SourceImage:
        """Read image bytes from disk.

        Raises:
            FileNotFoundError: if the file does not exist at resolved path.
        """
        resolved = self._resolve_path(Path(path))
        if not resolved.is_file():
            raise FileNotFoundError(f"File not found: {resolved}")
        return SourceImage(
            data=resolved.read_bytes(),
            file_name=resolved.name,
            content_type=mime_type_for_name(resolved.name),
        )

    def _resolve_path(self, path: Path) -> Path:
        if self._files_root is None or path.is_absolute():
            return path
        return self._files_root / path
