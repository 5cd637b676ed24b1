"""Application settings using Pydantic Settings for environment-based configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the codesearch retrieval core.

    All settings can be overridden via environment variables.
    Prefix is not used to allow standard env var names (e.g., QDRANT_URL).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Qdrant endpoint (url wins over host/port)
    qdrant_url: str | None = None
    qdrant_host: str | None = None
    qdrant_port: int = Field(default=6333, ge=1, le=65535)
    qdrant_https: bool | None = None
    qdrant_api_key: str | None = None
    qdrant_prefix: str | None = None

    # Adapter selection
    vectordb_backend: Literal["rest", "native"] = "rest"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    Clear cache with get_settings.cache_clear() if needed.
    """
    return Settings()
