"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from travel_pilot.clients import GeminiClient
from travel_pilot.services import (
    AnalysisOrchestrator,
    ImageAcquisition,
    ScanSessionStore,
)

from .config import get_app_settings, get_retry_policy


@lru_cache()
def get_gemini_client() -> GeminiClient:
    """Provide Gemini client instance."""
    return GeminiClient(get_app_settings().gemini, get_retry_policy())


@lru_cache()
def get_scan_session_store() -> ScanSessionStore:
    """Provide the process-wide scan session registry."""
    return ScanSessionStore(
        lambda: AnalysisOrchestrator(get_gemini_client()),
        ttl_seconds=get_app_settings().session_ttl_seconds,
    )


def get_image_acquisition() -> ImageAcquisition:
    """Build an image validator honouring the configured size limit."""
    return ImageAcquisition(max_bytes=get_app_settings().max_image_bytes)
