"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app and the command-line
scanner share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from travel_pilot.utils.http import RetryPolicy


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file into the environment."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        os.environ[key] = value.strip().strip('"').strip("'")


_load_env_file()


class GeminiSettings(BaseSettings):
    """Configuration for Gemini model access."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_", extra="ignore", protected_namespaces=()
    )

    api_key: str = Field(..., min_length=1)
    model_name: str = "gemini-2.5-flash-preview-09-2025"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout_seconds: float = Field(30.0, gt=0)
    target_language: str = Field(
        "Traditional Chinese",
        description="Language menus are translated into.",
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class RetrySettings(BaseSettings):
    """Retry/backoff configuration for the outbound inference call."""

    model_config = SettingsConfigDict(env_prefix="RETRY_", extra="ignore")

    max_retries: int = Field(5, ge=0)
    initial_delay_seconds: float = Field(1.0, ge=0)
    backoff_multiplier: float = Field(2.0, ge=1)
    jitter: float = Field(
        0.0,
        ge=0,
        le=1,
        description="Fraction of each delay randomly added or removed.",
    )
    client_errors: bool = Field(
        True,
        description="Retry 4xx responses other than 408/429 like transient failures.",
    )

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_delay=self.initial_delay_seconds,
            backoff_multiplier=self.backoff_multiplier,
            jitter=self.jitter,
            retry_client_errors=self.client_errors,
        )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(env_prefix="APP_", extra="ignore")

    environment: str = "development"
    log_level: str = "INFO"
    session_ttl_seconds: int = Field(
        900,
        gt=0,
        description="Idle scan sessions older than this are discarded.",
    )
    max_image_bytes: int = Field(10 * 1024 * 1024, gt=0)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "GeminiSettings",
    "RetrySettings",
    "get_settings",
]
