from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"
    log_payload_max_chars: int = Field(default=500, ge=50)

    extraction_provider: str = "gemini"
    extraction_fallback_provider: str = ""
    extraction_temperature: float = 0.1
    extraction_max_output_tokens: int = Field(default=8192, ge=256)
    extraction_timeout_seconds: int = Field(default=30, ge=1)

    gemini_api_key: str = ""
    gemini_model_name: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1"

    openai_api_key: str = ""
    openai_model_name: str = "gpt-4o"
    openai_base_url: str = ""

    preprocess_max_edge_px: int = Field(default=2400, ge=256)
    preprocess_jpeg_quality: float = Field(default=0.85, ge=0.8, le=1.0)

    cache_max_entries: int = Field(default=200, ge=1, le=5000)
    cache_ttl_seconds: int = Field(default=3600, ge=0)

    batch_group_size: int = Field(default=3, ge=1)
    batch_max_retries: int = Field(default=0, ge=0, le=1)

    monitor_max_samples: int = Field(default=1000, ge=1)

    default_nationality: str = ""
