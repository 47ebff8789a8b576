"""Application Configuration - environment-driven settings via pydantic-settings.

Invariants:
    - Every setting has a default: an app works with no environment at all
    - Environment variables use the SWITCHYARD_ prefix
    - get_settings() is cached (lru_cache) - single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SWITCHYARD_", env_file=".env", case_sensitive=False,
    )

    # Application
    app_title: str = "Switchyard"

    # Validation
    strict_validation: bool = True

    # Description document
    openapi_version: str = "3.1.0"

    # API
    cors_origins: list[str] = []

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
