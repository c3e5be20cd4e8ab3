from unittest.mock import AsyncMock, MagicMock

import pytest

from idscan.batch.job_runner import JobRunner
from idscan.extraction.exceptions import ParseError, ProviderError
from idscan.extraction.models import CanonicalIdentityRecord, ExtractionResult
from idscan.images.models import SourceImage


def _make_runner(max_retries: int = 0) -> tuple[JobRunner, MagicMock]:
    """Create a JobRunner with a mocked processor."""
    mock_processor = MagicMock()
    mock_processor.process = AsyncMock()
    return JobRunner(mock_processor, max_retries=max_retries), mock_processor


def _image() -> SourceImage:
    return SourceImage(data=b"img", file_name="a.jpg")


def _success() -> ExtractionResult:
    return ExtractionResult(
        success=True, file_name="a.jpg", record=CanonicalIdentityRecord(full_name="A")
    )


def _failure(error: Exception) -> ExtractionResult:
    return ExtractionResult(success=False, file_name="a.jpg", error=error)  # type: ignore[arg-type]


class TestSuccessfulProcessing:
    @pytest.mark.asyncio
    async def test_calls_processor(self) -> None:
        runner, mock_processor = _make_runner()
        mock_processor.process.return_value = _success()
        image = _image()

        await runner.run(0, image, "corr")

        mock_processor.process.assert_awaited_once_with(image, "corr")

    @pytest.mark.asyncio
    async def test_returns_item_result(self) -> None:
        runner, mock_processor = _make_runner()
        mock_processor.process.return_value = _success()

        item = await runner.run(4, _image())

        assert item.index == 4
        assert item.success is True
        assert item.data is not None
        assert item.data["full_name"] == "A"
        assert item.attempts == 1


class TestRetries:
    @pytest.mark.asyncio
    async def test_provider_failure_is_retried_within_budget(self) -> None:
        runner, mock_processor = _make_runner(max_retries=1)
        mock_processor.process.side_effect = [_failure(ProviderError("503")), _success()]

        item = await runner.run(0, _image())

        assert item.success is True
        assert item.attempts == 2

    @pytest.mark.asyncio
    async def test_retry_budget_is_respected(self) -> None:
        runner, mock_processor = _make_runner(max_retries=1)
        mock_processor.process.return_value = _failure(ProviderError("503"))

        item = await runner.run(0, _image())

        assert item.success is False
        assert item.error_kind == "provider_failed"
        assert mock_processor.process.await_count == 2

    @pytest.mark.asyncio
    async def test_no_retry_by_default(self) -> None:
        runner, mock_processor = _make_runner()
        mock_processor.process.return_value = _failure(ProviderError("503"))

        await runner.run(0, _image())

        assert mock_processor.process.await_count == 1

    @pytest.mark.asyncio
    async def test_parse_errors_are_not_retried(self) -> None:
        runner, mock_processor = _make_runner(max_retries=1)
        mock_processor.process.return_value = _failure(ParseError("bad json"))

        item = await runner.run(0, _image())

        assert item.error_kind == "output_uninterpretable"
        assert mock_processor.process.await_count == 1


class TestUnexpectedErrors:
    @pytest.mark.asyncio
    async def test_exception_becomes_internal_failure(self) -> None:
        runner, mock_processor = _make_runner()
        mock_processor.process.side_effect = RuntimeError("boom")

        item = await runner.run(2, _image())

        assert item.success is False
        assert item.error == "boom"
        assert item.error_kind == "internal"
        assert item.file_name == "a.jpg"
