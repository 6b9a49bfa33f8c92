"""Runtime configuration using Pydantic Settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from ``FLOWGRAPH_*`` environment variables.

    Example:
        >>> settings = Settings(registry_base_url="http://localhost:3000")
        >>> settings.registry_url
        'http://localhost:3000/api/registry-execute'
    """

    model_config = SettingsConfigDict(
        env_prefix="FLOWGRAPH_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # Tool registry endpoint
    registry_base_url: str = ""
    registry_path: str = "/api/registry-execute"
    tool_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")

    # Node defaults
    default_retry_delay_ms: float = Field(default=1000.0, ge=0)
    default_backoff_multiplier: float = Field(default=1.0, ge=1.0)
    default_max_iterations: int = Field(default=1000, gt=0)

    # Logging
    log_level: str = "info"
    log_enabled: bool = True

    @property
    def registry_url(self) -> str:
        return f"{self.registry_base_url.rstrip('/')}{self.registry_path}"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
