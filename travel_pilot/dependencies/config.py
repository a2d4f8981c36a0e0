"""
Settings-derived FastAPI dependencies shared by the client factories.
"""

from functools import lru_cache

from travel_pilot.core.config import AppSettings, get_settings
from travel_pilot.utils.http import RetryPolicy


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return get_settings()


@lru_cache()
def get_retry_policy() -> RetryPolicy:
    """Backoff policy for Gemini calls, built once from the ``RETRY_*`` settings."""
    return get_app_settings().retry.to_policy()


__all__ = ["get_app_settings", "get_retry_policy"]
