import io
import json

from PIL import Image

from idscan.extraction.client_base import BaseExtractionClient
from idscan.extraction.exceptions import ProviderError
from idscan.extraction.models import CANONICAL_FIELDS, RawResult
from idscan.images.models import PreparedImage, SourceImage


def make_image_bytes(
    width: int,
    height: int,
    fmt: str = "JPEG",
    mode: str = "RGB",
    color: object = 200,
) -> bytes:
    buf = io.BytesIO()
    Image.new(mode, (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


def make_source_image(
    width: int = 1200,
    height: int = 1600,
    file_name: str = "id.jpg",
    fmt: str = "JPEG",
    content_type: str | None = "image/jpeg",
    color: object = 200,
) -> SourceImage:
    return SourceImage(
        data=make_image_bytes(width, height, fmt=fmt, color=color),
        file_name=file_name,
        content_type=content_type,
    )


def make_prepared_image() -> PreparedImage:
    return PreparedImage(data=b"\xff\xd8fake", mime_type="image/jpeg", width=10, height=10)


def identity_json(**overrides: object) -> str:
    payload: dict[str, object] = {
        **dict.fromkeys(CANONICAL_FIELDS),
        "document_type": "passport",
        "country": "MA",
        "full_name": "JOHN SMITH",
        "document_number": "P1234567",
        "date_of_birth": "1985-06-15",
        "confidence_estimate": 0.8,
    }
    payload.update(overrides)
    return json.dumps(payload)


class CountingClient(BaseExtractionClient):
    """Test client that counts calls and can fail for chosen images."""

    provider_name = "counting"

    def __init__(
        self,
        text: str | None = None,
        fail_payloads: set[bytes] | None = None,
        finish_reason: str = "complete",
    ) -> None:
        self.calls = 0
        self._text = text if text is not None else identity_json()
        self._fail_payloads = fail_payloads or set()
        self._finish_reason = finish_reason

    async def generate(
        self,
        *,
        model: str,
        temperature: float,
        max_output_tokens: int,
        prompt: str,
        image: PreparedImage,
    ) -> RawResult:
        self.calls += 1
        if image.data in self._fail_payloads:
            raise ProviderError("AI provider HTTP 503: Service Unavailable", provider=self.provider_name)
        return RawResult(
            text=self._text,
            finish_reason=self._finish_reason,  # type: ignore[arg-type]
            provider=self.provider_name,
            model=model,
        )
