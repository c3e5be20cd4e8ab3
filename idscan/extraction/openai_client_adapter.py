import httpx
import openai

from idscan.extraction.client_base import BaseExtractionClient
from idscan.extraction.exceptions import ProviderError
from idscan.extraction.models import RawResult
from idscan.images.models import PreparedImage


class OpenAIClientAdapter(BaseExtractionClient):
    """Extraction client adapter built on the OpenAI-compatible chat API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
        provider_name: str = "openai",
    ) -> None:
        self.provider_name = provider_name
        # Local OpenAI-compatible hosts accept any key; the SDK refuses an empty one.
        self._client = openai.AsyncOpenAI(
            api_key=api_key or "not-configured",
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )

    async def generate(
        self,
        *,
        model: str,
        temperature: float,
        max_output_tokens: int,
        prompt: str,
        image: PreparedImage,
    ) -> RawResult:
        try:
            response = await self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                max_tokens=max_output_tokens,
                response_format={"type": "json_object"},
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "image_url", "image_url": {"url": image.to_data_url()}},
                        ],
                    }
                ],
            )
        except (openai.APITimeoutError, httpx.TimeoutException) as exc:
            raise ProviderError(
                f"AI provider timed out: {exc}", provider=self.provider_name
            ) from exc
        except (openai.APIConnectionError, httpx.ConnectError) as exc:
            raise ProviderError(
                f"AI provider network error: {exc}", provider=self.provider_name
            ) from exc
        except openai.APIError as exc:
            raise ProviderError(
                f"AI provider API error: {exc}",
                provider=self.provider_name,
                diagnostic=str(getattr(exc, "body", "") or ""),
            ) from exc

        if not response.choices:
            raise ProviderError("AI returned no choices", provider=self.provider_name)
        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            raise ProviderError(
                "Content blocked by safety filters: content_filter",
                provider=self.provider_name,
            )
        content = choice.message.content
        if not content:
            raise ProviderError("AI returned empty response", provider=self.provider_name)
        return RawResult(
            text=content,
            finish_reason="truncated" if choice.finish_reason == "length" else "complete",
            provider=self.provider_name,
            model=model,
        )
