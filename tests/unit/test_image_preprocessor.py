import io

import pytest
from PIL import Image

from idscan.extraction.exceptions import ImageValidationError
from idscan.images.models import SourceImage
from idscan.images.preprocessor import ImagePreprocessor
from tests.helpers import make_image_bytes, make_source_image


class TestPassThrough:
    def test_compliant_image_is_unchanged(self, id_card_image: SourceImage) -> None:
        prepared = ImagePreprocessor(max_edge_px=2400).prepare(id_card_image)

        assert prepared.data == id_card_image.data
        assert prepared.resized is False
        assert (prepared.width, prepared.height) == (1200, 1600)

    def test_prepare_is_idempotent(self) -> None:
        preprocessor = ImagePreprocessor(max_edge_px=1000)
        first = preprocessor.prepare(make_source_image(3000, 1500))
        second = preprocessor.prepare(
            SourceImage(data=first.data, file_name="again.jpg", content_type=first.mime_type)
        )

        assert second.data == first.data
        assert second.resized is False


class TestDownsampling:
    def test_oversized_image_is_reencoded_as_jpeg(self) -> None:
        image = make_source_image(3000, 1000, fmt="PNG", file_name="scan.png", content_type="image/png")
        prepared = ImagePreprocessor(max_edge_px=1200).prepare(image)

        assert prepared.resized is True
        assert prepared.mime_type == "image/jpeg"
        assert (prepared.width, prepared.height) == (1200, 400)
        with Image.open(io.BytesIO(prepared.data)) as img:
            assert img.format == "JPEG"
            assert img.size == (1200, 400)

    def test_rgba_input_is_converted(self) -> None:
        data = make_image_bytes(2000, 2000, fmt="PNG", mode="RGBA", color=(10, 20, 30, 128))
        prepared = ImagePreprocessor(max_edge_px=500).prepare(
            SourceImage(data=data, file_name="alpha.png")
        )
        assert prepared.mime_type == "image/jpeg"
        assert max(prepared.width, prepared.height) == 500


class TestMimeResolution:
    @pytest.mark.parametrize(
        ("content_type", "file_name", "expected"),
        [
            ("image/png", "scan.jpg", "image/png"),
            ("image/jpg", "scan.png", "image/jpeg"),
            ("image/webp; charset=binary", "scan", "image/webp"),
            (None, "scan.PNG", "image/png"),
            ("application/octet-stream", "scan.webp", "image/webp"),
            ("application/octet-stream", "scan.bin", "image/jpeg"),
            (None, "", "image/jpeg"),
        ],
    )
    def test_declared_then_extension_then_default(
        self, content_type: str | None, file_name: str, expected: str
    ) -> None:
        image = SourceImage(data=b"", file_name=file_name, content_type=content_type)
        assert ImagePreprocessor().resolve_mime_type(image) == expected


class TestUndecodable:
    def test_raises_image_validation_error(self, broken_image: SourceImage) -> None:
        with pytest.raises(ImageValidationError, match="Cannot decode image"):
            ImagePreprocessor().prepare(broken_image)


class TestQuality:
    def test_quality_is_clamped(self) -> None:
        assert ImagePreprocessor(jpeg_quality=0.2)._jpeg_quality == 0.8
        assert ImagePreprocessor(jpeg_quality=1.5)._jpeg_quality == 1.0
