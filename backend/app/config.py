"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database (unset -> in-memory document store)
    database_url: str | None = None

    # Generative provider
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str | None = None
    llm_stream: bool = False
    llm_timeout_seconds: float = 60.0

    # Retry (milliseconds)
    retry_max_retries: int = 3
    retry_base_delay_ms: int = 2000

    # Retrieval
    max_sources: int = 8
    chunk_target_chars: int = 500

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
