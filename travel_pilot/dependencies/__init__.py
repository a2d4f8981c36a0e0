"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_gemini_client,
    get_image_acquisition,
    get_scan_session_store,
)
from .config import get_app_settings, get_retry_policy

__all__ = [
    "get_app_settings",
    "get_gemini_client",
    "get_image_acquisition",
    "get_retry_policy",
    "get_scan_session_store",
]
