"""Example extraction client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseExtractionClient and register the provider in ProviderFactory.
"""

import json
from typing import ClassVar

from idscan.extraction.client_base import BaseExtractionClient
from idscan.extraction.models import CANONICAL_FIELDS, RawResult
from idscan.images.models import PreparedImage


class ExampleClientAdapter(BaseExtractionClient):
    """Example adapter that returns a fixed valid identity JSON.

    No network calls. Useful for local development, tests, and as a template
    for building real provider adapters.
    """

    provider_name = "example"

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {
        **dict.fromkeys(CANONICAL_FIELDS),
        "document_type": "national_id",
        "country": "MA",
        "full_name": "JANE DOE",
        "given_name": "JANE",
        "family_name": "DOE",
        "document_number": "AB123456",
        "nationality": "MAR",
        "date_of_birth": "1990-01-31",
        "gender": "F",
        "expiry_date": "2030-01-31",
        "confidence_estimate": 0.9,
    }

    async def generate(
        self,
        *,
        model: str,
        temperature: float,
        max_output_tokens: int,
        prompt: str,
        image: PreparedImage,
    ) -> RawResult:
        _ = temperature, max_output_tokens, prompt, image
        return RawResult(
            text=json.dumps(self.DEFAULT_RESPONSE),
            finish_reason="complete",
            provider=self.provider_name,
            model=model,
        )
