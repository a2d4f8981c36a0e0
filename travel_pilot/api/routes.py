"""
FastAPI routes backing the single-page scanner.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from travel_pilot.dependencies import (
    get_app_settings,
    get_image_acquisition,
    get_scan_session_store,
)
from travel_pilot.schemas import ScanRequest, ScanStateResponse
from travel_pilot.services import (
    AnalysisStatus,
    ConcurrentSubmitError,
    ImageAcquisitionError,
    ScanSession,
)

router = APIRouter()
logger = logging.getLogger(__name__)

# The failure kind is for logs only; browsers get one generic message.
_SCAN_FAILED_MESSAGE = "We could not read this image. Please try again."


def _to_response(session: ScanSession) -> ScanStateResponse:
    state = session.orchestrator.state
    return ScanStateResponse(
        session_id=session.session_id,
        status=state.status.value,
        generation=state.generation,
        result=state.output,
        error=_SCAN_FAILED_MESSAGE if state.status is AnalysisStatus.ERROR else None,
        preview_uri=state.preview_uri,
    )


def _require_session(store: Any, session_id: str) -> ScanSession:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail="Scan session not found or expired.",
        )
    return session


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(
    settings: Annotated[Any, Depends(get_app_settings)],
) -> dict:
    """Simple health endpoint for monitoring."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "model": settings.gemini.model_name,
    }


@router.post(
    "/sessions",
    status_code=HTTPStatus.CREATED,
    response_model=ScanStateResponse,
)
async def create_scan_session(
    store: Annotated[Any, Depends(get_scan_session_store)],
) -> ScanStateResponse:
    """Open a new scan session in the idle state."""
    session = store.create()
    logger.info("Opened scan session %s.", session.session_id)
    return _to_response(session)


@router.get("/sessions/{session_id}", response_model=ScanStateResponse)
async def get_scan_session(
    session_id: str,
    store: Annotated[Any, Depends(get_scan_session_store)],
) -> ScanStateResponse:
    """Return the current state so the page can poll while processing."""
    return _to_response(_require_session(store, session_id))


@router.post(
    "/sessions/{session_id}/scan",
    status_code=HTTPStatus.ACCEPTED,
    response_model=ScanStateResponse,
)
async def submit_scan(
    session_id: str,
    payload: ScanRequest,
    response: Response,
    store: Annotated[Any, Depends(get_scan_session_store)],
    acquisition: Annotated[Any, Depends(get_image_acquisition)],
    wait: bool = Query(
        default=False,
        description="When true, respond only once the scan has finished.",
    ),
) -> ScanStateResponse:
    """Submit a picked image for analysis."""
    session = _require_session(store, session_id)

    try:
        image = acquisition.from_base64(payload.image, mime_type=payload.mime_type)
    except ImageAcquisitionError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc

    if image is None:
        # Nothing picked; leave the state untouched.
        response.status_code = HTTPStatus.OK
        return _to_response(session)

    orchestrator = session.orchestrator
    logger.info(
        "Scan submitted for session %s (%s, %s).",
        session_id,
        payload.filename or "unnamed",
        image.mime_type,
    )
    try:
        if wait:
            await orchestrator.submit(image.payload, preview_uri=image.preview_uri)
            response.status_code = HTTPStatus.OK
        else:
            orchestrator.start(image.payload, preview_uri=image.preview_uri)
    except ConcurrentSubmitError as exc:
        raise HTTPException(status_code=HTTPStatus.CONFLICT, detail=str(exc)) from exc

    return _to_response(session)


@router.post("/sessions/{session_id}/reset", response_model=ScanStateResponse)
async def reset_scan_session(
    session_id: str,
    store: Annotated[Any, Depends(get_scan_session_store)],
) -> ScanStateResponse:
    """Go back to the capture screen, discarding any pending result."""
    session = _require_session(store, session_id)
    session.orchestrator.reset()
    return _to_response(session)


@router.delete("/sessions/{session_id}", status_code=HTTPStatus.NO_CONTENT)
async def close_scan_session(
    session_id: str,
    store: Annotated[Any, Depends(get_scan_session_store)],
) -> Response:
    """Discard a session once the page is closed."""
    session = _require_session(store, session_id)
    await session.orchestrator.cancel_pending()
    store.delete(session_id)
    logger.info("Closed scan session %s.", session_id)
    return Response(status_code=HTTPStatus.NO_CONTENT)


__all__ = ["router"]
