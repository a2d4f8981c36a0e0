"""
FastAPI application entrypoint for the Travel Pilot scanner.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from travel_pilot.api.routes import router as api_router
from travel_pilot.core.config import get_settings
from travel_pilot.core.logging import configure_logging
from travel_pilot.dependencies import get_scan_session_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    # Background scans would otherwise outlive the event loop.
    factory = app.dependency_overrides.get(get_scan_session_store, get_scan_session_store)
    store = factory()
    logger.info("Shutting down; cancelling scans in %d session(s).", len(store))
    await store.aclose()


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Travel Pilot",
        version="0.1.0",
        description="Photograph a menu or product and get a translation or review card.",
        lifespan=lifespan,
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app", "lifespan"]
