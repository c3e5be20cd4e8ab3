"""Provider strategy: one configured way of asking a provider for fields."""

from pathlib import Path

from idscan.extraction.client_base import BaseExtractionClient
from idscan.extraction.models import ExtractionRequest, RawResult
from idscan.extraction.prompt_loader import build_field_template, load_prompt_template
from idscan.logging.logger import Log


class ProviderStrategy:
    """Binds a client to a model, generation parameters and the field contract."""

    def __init__(
        self,
        *,
        client: BaseExtractionClient,
        model: str,
        temperature: float = 0.1,
        max_output_tokens: int = 8192,
        prompt_template_path: Path | None = None,
        name: str | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._max_output_tokens = max_output_tokens
        self._prompt = load_prompt_template(prompt_template_path).format(
            field_template=build_field_template()
        )
        self.name = name or client.provider_name

    @property
    def model(self) -> str:
        return self._model

    @property
    def prompt(self) -> str:
        return self._prompt

    async def extract(self, request: ExtractionRequest) -> RawResult:
        """Issue a single provider call. No retries happen here."""
        Log.debug(
            "Provider request",
            strategy=self.name,
            model=self._model,
            mime_type=request.image.mime_type,
            image_bytes=len(request.image.data),
            prompt_chars=len(self._prompt),
            max_output_tokens=self._max_output_tokens,
            correlation_id=request.correlation_id,
        )
        result = await self._client.generate(
            model=self._model,
            temperature=self._temperature,
            max_output_tokens=self._max_output_tokens,
            prompt=self._prompt,
            image=request.image,
        )
        Log.debug(
            "Provider raw response",
            strategy=self.name,
            finish_reason=result.finish_reason,
            text=result.text,
        )
        if result.truncated:
            Log.warning(
                "Provider response truncated by output limit",
                strategy=self.name,
                max_output_tokens=self._max_output_tokens,
            )
        return result
