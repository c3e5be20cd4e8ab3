from idscan.batch.models import BatchItemResult
from idscan.extraction.exceptions import ProviderError
from idscan.extraction.models import ExtractionResult
from idscan.images.models import SourceImage
from idscan.logging.logger import Log
from idscan.processor.processor import Processor


class JobRunner:
    """Run one batch item, catch exceptions, and apply retry logic."""

    def __init__(self, processor: Processor, max_retries: int = 0) -> None:
        self._processor = processor
        self._max_retries = max(0, max_retries)

    async def run(
        self,
        index: int,
        image: SourceImage,
        correlation_id: str | None = None,
    ) -> BatchItemResult:
        """Execute a single item. Never raises for item-level failures."""
        attempt = 0
        while True:
            attempt += 1
            Log.debug(f"Running item {index} ({image.file_name}) attempt {attempt}")
            try:
                result = await self._processor.process(image, correlation_id)
            except Exception as exc:
                return self._handle_failure(index, image, exc, attempt)
            if result.success or not self._should_retry(result, attempt):
                return BatchItemResult.from_extraction(index, result, attempts=attempt)
            Log.warning(
                f"Item {index} ({image.file_name}) will be retried",
                attempt=attempt,
                error=result.error,
            )

    def _should_retry(self, result: ExtractionResult, attempt: int) -> bool:
        """Only provider failures are retried, within the retry budget."""
        return isinstance(result.error, ProviderError) and attempt <= self._max_retries

    def _handle_failure(
        self, index: int, image: SourceImage, exc: Exception, attempt: int
    ) -> BatchItemResult:
        Log.error(f"Item {index} ({image.file_name}) failed unexpectedly: {exc}")
        return BatchItemResult.failure(
            index,
            image.file_name,
            str(exc) or exc.__class__.__name__,
            "internal",
            attempts=attempt,
        )
