from typing import ClassVar

from idscan.config.settings import Settings
from idscan.extraction.client_base import BaseExtractionClient
from idscan.extraction.example_client_adapter import ExampleClientAdapter
from idscan.extraction.gemini_client_adapter import GeminiClientAdapter
from idscan.extraction.openai_client_adapter import OpenAIClientAdapter
from idscan.extraction.strategy import ProviderStrategy


class ProviderFactory:
    """Creates the configured, ordered provider strategies."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def supported_providers(cls) -> list[str]:
        return ["example", "gemini", "openai", "openai_compatible", *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS)]

    @classmethod
    def create_strategies(cls, settings: Settings) -> list[ProviderStrategy]:
        """Primary strategy first, then the optional legacy fallback."""
        names = [settings.extraction_provider]
        fallback = settings.extraction_fallback_provider.strip()
        if fallback and fallback.lower() != settings.extraction_provider.lower():
            names.append(fallback)
        return [cls.create(name, settings) for name in names]

    @classmethod
    def create(cls, provider: str, settings: Settings) -> ProviderStrategy:
        """Create one strategy from application settings."""
        provider = provider.lower()
        client = cls._create_client(provider, settings)
        return ProviderStrategy(
            client=client,
            model=cls._resolve_model_name(provider, settings),
            temperature=settings.extraction_temperature,
            max_output_tokens=settings.extraction_max_output_tokens,
            name=provider,
        )

    @classmethod
    def _create_client(cls, provider: str, settings: Settings) -> BaseExtractionClient:
        if provider == "example":
            return ExampleClientAdapter()
        if provider == "gemini":
            return GeminiClientAdapter(
                api_key=settings.gemini_api_key,
                timeout_seconds=settings.extraction_timeout_seconds,
                base_url=settings.gemini_base_url,
            )
        return OpenAIClientAdapter(
            api_key=settings.openai_api_key,
            timeout_seconds=settings.extraction_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
            provider_name=provider,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return settings.openai_base_url.strip() or None
        if provider == "openai_compatible":
            url = settings.openai_base_url.strip()
            if not url:
                raise ValueError(
                    "openai_base_url is required for extraction_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        raise ValueError(
            f"Unknown extraction provider '{provider}'. Choose from: {cls.supported_providers()}"
        )

    @classmethod
    def _resolve_model_name(cls, provider: str, settings: Settings) -> str:
        if provider == "example":
            return "example"
        if provider == "gemini":
            return settings.gemini_model_name
        return settings.openai_model_name
