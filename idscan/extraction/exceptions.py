from typing import ClassVar

MAX_DIAGNOSTIC_CHARS = 2000


def cap_text(text: str, limit: int = MAX_DIAGNOSTIC_CHARS) -> str:
    """Truncate diagnostic text carried by exceptions."""
    if len(text) <= limit:
        return text
    return text[:limit] + "...[truncated]"


class ExtractionError(Exception):
    """Base exception for all extraction failures."""

    kind: ClassVar[str] = "extraction_failed"
    user_message: ClassVar[str] = "The document could not be processed."


class ImageValidationError(ExtractionError):
    """Raised when the source image cannot be decoded."""

    kind: ClassVar[str] = "image_unreadable"
    user_message: ClassVar[str] = "Could not read the image."


class ProviderError(ExtractionError):
    """Raised when the extraction provider fails or rejects the request."""

    kind: ClassVar[str] = "provider_failed"
    user_message: ClassVar[str] = "The extraction provider failed or rejected the request."

    def __init__(self, message: str, *, provider: str = "", diagnostic: str = "") -> None:
        super().__init__(message)
        self.provider = provider
        self.diagnostic = cap_text(diagnostic)


class ParseError(ExtractionError):
    """Raised when provider output cannot be turned into a record."""

    kind: ClassVar[str] = "output_uninterpretable"
    user_message: ClassVar[str] = "The provider's output could not be interpreted."

    def __init__(self, message: str, *, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = cap_text(raw_text)


class NormalizationWarning(UserWarning):
    """Non-fatal signal that an extraction looks incomplete."""
