"""Engine configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="FLOWGRAPH_",
    )

    log_level: Literal["debug", "info", "warning", "error"] = "info"

    # Function identifiers carry this version; older documents still resolve
    # through the structural fallback.
    registry_version: str = "1.0.0.0"

    # Persisted document settings
    flow_document_version: str = "1.0"
    default_flow_name: str = "Untitled Flow"

    # Built-in function defaults
    http_timeout_ms: int = 10000
    max_prompt_wait_seconds: float | None = None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
