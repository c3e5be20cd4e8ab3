import json
from typing import Any, ClassVar, NoReturn

import httpx

from idscan.extraction.client_base import BaseExtractionClient
from idscan.extraction.exceptions import ProviderError
from idscan.extraction.models import FinishReason, RawResult
from idscan.images.models import PreparedImage


class GeminiClientAdapter(BaseExtractionClient):
    """Extraction client built on the Gemini generateContent REST API.

    The API key travels in the ``x-goog-api-key`` header so it never appears
    in a URL, an exception message, or a log line.
    """

    provider_name = "gemini"

    SAFETY_CATEGORIES: ClassVar[tuple[str, ...]] = (
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
    _BLOCKED_FINISH_REASONS: ClassVar[frozenset[str]] = frozenset(
        {"SAFETY", "RECITATION", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII"}
    )

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str = "https://generativelanguage.googleapis.com/v1",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport

    async def generate(
        self,
        *,
        model: str,
        temperature: float,
        max_output_tokens: int,
        prompt: str,
        image: PreparedImage,
    ) -> RawResult:
        if not self._api_key:
            raise ProviderError("Gemini API key is not configured", provider=self.provider_name)

        url = f"{self._base_url}/models/{model}:generateContent"
        body = self._build_request_body(temperature, max_output_tokens, prompt, image)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    url,
                    json=body,
                    headers={"x-goog-api-key": self._api_key},
                )
        except httpx.TimeoutException as exc:
            raise ProviderError(
                f"AI provider timed out: {exc}", provider=self.provider_name
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"AI provider network error: {exc}", provider=self.provider_name
            ) from exc

        envelope = self._decode_envelope(response)
        text, finish_reason = self._read_candidate(envelope)
        return RawResult(
            text=text,
            finish_reason=finish_reason,
            provider=self.provider_name,
            model=model,
        )

    def _build_request_body(
        self,
        temperature: float,
        max_output_tokens: int,
        prompt: str,
        image: PreparedImage,
    ) -> dict[str, object]:
        return {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {"inlineData": {"mimeType": image.mime_type, "data": image.to_base64()}},
                    ]
                }
            ],
            "generationConfig": {
                "temperature": temperature,
                "topK": 1,
                "topP": 1,
                "maxOutputTokens": max_output_tokens,
            },
            "safetySettings": [
                {"category": category, "threshold": "BLOCK_NONE"}
                for category in self.SAFETY_CATEGORIES
            ],
        }

    def _decode_envelope(self, response: httpx.Response) -> dict[str, Any]:
        raw = response.text
        if not response.is_success:
            raise ProviderError(
                f"AI provider HTTP {response.status_code}: {response.reason_phrase}",
                provider=self.provider_name,
                diagnostic=raw,
            )
        if not raw.strip():
            raise ProviderError("Empty response from AI provider", provider=self.provider_name)
        try:
            envelope = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ProviderError(
                f"Invalid JSON envelope from AI provider: {exc}",
                provider=self.provider_name,
                diagnostic=raw,
            ) from exc
        if not isinstance(envelope, dict):
            raise ProviderError(
                "AI provider envelope must be an object",
                provider=self.provider_name,
                diagnostic=raw,
            )
        return envelope

    def _read_candidate(self, envelope: dict[str, Any]) -> tuple[str, FinishReason]:
        error = envelope.get("error")
        if error:
            message = error.get("message", "Unknown API error") if isinstance(error, dict) else error
            raise ProviderError(
                f"AI provider API error: {message}",
                provider=self.provider_name,
                diagnostic=json.dumps(error),
            )

        feedback = self._expect(envelope, envelope, "promptFeedback", dict, {})
        block_reason = feedback.get("blockReason")
        if block_reason:
            raise ProviderError(
                f"Content blocked by safety filters: {block_reason}",
                provider=self.provider_name,
                diagnostic=json.dumps(feedback),
            )

        candidates = self._expect(envelope, envelope, "candidates", list, [])
        if not candidates:
            raise ProviderError("AI provider returned no candidates", provider=self.provider_name)

        candidate = candidates[0]
        if not isinstance(candidate, dict):
            self._malformed(envelope, "candidates[0] must be an object")
        finish_reason = candidate.get("finishReason", "")
        if finish_reason in self._BLOCKED_FINISH_REASONS:
            raise ProviderError(
                f"Content blocked by safety filters: {finish_reason}",
                provider=self.provider_name,
                diagnostic=json.dumps(candidate.get("safetyRatings", [])),
            )

        content = self._expect(envelope, candidate, "content", dict, {})
        parts = self._expect(envelope, content, "parts", list, [])
        chunks: list[str] = []
        for part in parts:
            if not isinstance(part, dict):
                self._malformed(envelope, "content part must be an object")
            chunk = part.get("text", "")
            if not isinstance(chunk, str):
                self._malformed(envelope, "content part text must be a string")
            chunks.append(chunk)
        text = "".join(chunks)
        if not text:
            raise ProviderError("AI provider returned empty content", provider=self.provider_name)

        return text, "truncated" if finish_reason == "MAX_TOKENS" else "complete"

    def _expect(
        self,
        envelope: dict[str, Any],
        node: dict[str, Any],
        key: str,
        kind: type,
        default: Any,
    ) -> Any:
        value = node.get(key)
        if value is None:
            return default
        if not isinstance(value, kind):
            self._malformed(envelope, f"{key} must be a {kind.__name__}")
        return value

    def _malformed(self, envelope: dict[str, Any], detail: str) -> NoReturn:
        raise ProviderError(
            f"Malformed envelope from AI provider: {detail}",
            provider=self.provider_name,
            diagnostic=json.dumps(envelope, default=str),
        )
