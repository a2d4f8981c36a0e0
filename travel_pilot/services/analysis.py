"""State machine driving a single scan from submission to result."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Protocol

from travel_pilot.clients.gemini import GeminiModelError
from travel_pilot.schemas import ParsedOutput
from travel_pilot.utils.http import HTTPCallError

logger = logging.getLogger(__name__)


class AnalysisStatus(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    RESULT = "result"
    ERROR = "error"


class ConcurrentSubmitError(RuntimeError):
    """Raised when a scan is submitted while another one is still processing."""


class ImageAnalyzer(Protocol):
    async def analyze_image(self, image_base64: str) -> ParsedOutput: ...


@dataclass(frozen=True, slots=True)
class AnalysisState:
    """Immutable snapshot of the orchestrator's state.

    ``output`` is only set for ``RESULT`` and ``error``/``error_kind`` only for
    ``ERROR``. ``generation`` identifies the submission (or reset) that
    produced the snapshot.
    """

    status: AnalysisStatus = AnalysisStatus.IDLE
    generation: int = 0
    output: Optional[ParsedOutput] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    preview_uri: Optional[str] = None


class AnalysisOrchestrator:
    """Own the idle → processing → result/error cycle for one user session."""

    def __init__(self, analyzer: ImageAnalyzer) -> None:
        self._analyzer = analyzer
        self._generation = 0
        self._state = AnalysisState()
        self._tasks: set[asyncio.Task[AnalysisState]] = set()

    @property
    def state(self) -> AnalysisState:
        return self._state

    async def submit(self, payload: str, *, preview_uri: str | None = None) -> AnalysisState:
        """Analyse ``payload`` and return the state the submission ended in.

        If ``reset`` (or another submission) happened meanwhile, the returned
        state is the current one and the late completion is discarded.
        """
        generation = self._begin(preview_uri)
        return await self._run(generation, payload)

    def start(self, payload: str, *, preview_uri: str | None = None) -> asyncio.Task[AnalysisState]:
        """Move to processing and analyse ``payload`` in a background task."""
        generation = self._begin(preview_uri)
        task = asyncio.create_task(self._run(generation, payload))
        self._tasks.add(task)

        def _finished(done: asyncio.Task[AnalysisState]) -> None:
            self._tasks.discard(done)
            # A task cancelled before its first step never enters ``_run``.
            if done.cancelled():
                self._settle_cancelled(generation)

        task.add_done_callback(_finished)
        return task

    def reset(self) -> AnalysisState:
        """Return to idle. An in-flight call keeps running but its result is dropped."""
        self._generation += 1
        self._state = AnalysisState(generation=self._generation)
        logger.debug("Scan state reset (generation %d).", self._generation)
        return self._state

    async def cancel_pending(self) -> None:
        """Cancel background scans and wait until they have settled."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _begin(self, preview_uri: str | None) -> int:
        if self._state.status is AnalysisStatus.PROCESSING:
            raise ConcurrentSubmitError("A scan is already being processed.")
        self._generation += 1
        self._state = AnalysisState(
            status=AnalysisStatus.PROCESSING,
            generation=self._generation,
            preview_uri=preview_uri,
        )
        logger.debug("Scan submitted (generation %d).", self._generation)
        return self._generation

    async def _run(self, generation: int, payload: str) -> AnalysisState:
        try:
            output = await self._analyzer.analyze_image(payload)
        except asyncio.CancelledError:
            self._settle_cancelled(generation)
            raise
        except (HTTPCallError, GeminiModelError) as exc:
            logger.warning("Scan failed with %s: %s", type(exc).__name__, exc)
            changes = {"error": str(exc), "error_kind": type(exc).__name__}
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected failure while analysing scan.")
            changes = {
                "error": str(exc) or type(exc).__name__,
                "error_kind": type(exc).__name__,
            }
        else:
            changes = {"output": output}

        if generation != self._generation:
            logger.info(
                "Discarding stale scan completion (generation %d, current %d).",
                generation,
                self._generation,
            )
            return self._state

        status = AnalysisStatus.RESULT if "output" in changes else AnalysisStatus.ERROR
        self._state = replace(self._state, status=status, **changes)
        return self._state

    def _settle_cancelled(self, generation: int) -> None:
        if generation != self._generation or self._state.status is not AnalysisStatus.PROCESSING:
            return
        logger.warning("Scan cancelled (generation %d).", generation)
        self._state = replace(
            self._state,
            status=AnalysisStatus.ERROR,
            error="The scan was cancelled.",
            error_kind="CancelledError",
        )


__all__ = [
    "AnalysisOrchestrator",
    "AnalysisState",
    "AnalysisStatus",
    "ConcurrentSubmitError",
    "ImageAnalyzer",
]
