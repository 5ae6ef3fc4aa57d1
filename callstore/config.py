"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - validate_storage_settings() runs once at startup; a ConfigurationError
      there stops the process before it accepts events

Design Decisions:
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from callstore.core.errors import ConfigurationError

SUPPORTED_DRIVERS = ("postgresql+asyncpg", "sqlite+aiosqlite")


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://calls:calls@db:5432/calls"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting platforms provide postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Storage boundary
    storage_timeout_seconds: float = 5.0

    # Usage summaries
    usage_window_hours: int = 24

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


def validate_storage_settings(settings: Settings) -> None:
    """Fail fast on a database URL the store cannot use."""
    if not settings.database_url:
        raise ConfigurationError("DATABASE_URL is empty", "database_url")
    try:
        url = make_url(settings.database_url)
    except ArgumentError:
        raise ConfigurationError("could not parse DATABASE_URL", "database_url")
    if url.drivername not in SUPPORTED_DRIVERS:
        raise ConfigurationError(
            f"driver '{url.drivername}' not supported "
            f"(use one of {', '.join(SUPPORTED_DRIVERS)})",
            "database_url",
        )
    if url.drivername.startswith("postgresql") and not (url.username and url.password):
        raise ConfigurationError("database credentials missing", "database_url")
    if settings.storage_timeout_seconds <= 0:
        raise ConfigurationError("must be positive", "storage_timeout_seconds")
    if settings.usage_window_hours <= 0:
        raise ConfigurationError("must be positive", "usage_window_hours")


@lru_cache
def get_settings() -> Settings:
    return Settings()
