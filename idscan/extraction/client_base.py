from abc import ABC, abstractmethod

from idscan.extraction.models import RawResult
from idscan.images.models import PreparedImage


class BaseExtractionClient(ABC):
    """Contract for provider-specific vision extraction clients."""

    provider_name: str = ""

    @abstractmethod
    async def generate(
        self,
        *,
        model: str,
        temperature: float,
        max_output_tokens: int,
        prompt: str,
        image: PreparedImage,
    ) -> RawResult:
        """Send one image with the instruction prompt and return the raw text.

        Raises:
            ProviderError: on transport failure, non-success status, empty or
                malformed envelope, timeout, or a safety block.
        """
