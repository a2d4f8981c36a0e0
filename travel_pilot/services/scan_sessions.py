"""In-memory storage for per-user scan sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional
from uuid import uuid4

from travel_pilot.services.analysis import AnalysisOrchestrator, AnalysisStatus


@dataclass(slots=True)
class ScanSession:
    """A browser session and the orchestrator that owns its scan state."""

    session_id: str
    orchestrator: AnalysisOrchestrator
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)


class ScanSessionStore:
    """Session registry with TTL pruning.

    Sessions live in process memory because each one holds the asyncio task
    of its in-flight scan. Sessions still processing are never pruned.
    """

    def __init__(
        self,
        orchestrator_factory: Callable[[], AnalysisOrchestrator],
        ttl_seconds: int = 900,
    ) -> None:
        self._factory = orchestrator_factory
        self._ttl = ttl_seconds
        self._sessions: Dict[str, ScanSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> ScanSession:
        self._prune()
        session = ScanSession(session_id=uuid4().hex, orchestrator=self._factory())
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> Optional[ScanSession]:
        self._prune()
        session = self._sessions.get(session_id)
        if session is not None:
            session.touch()
        return session

    def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def aclose(self) -> None:
        """Cancel every background scan, leaving their sessions in the error state."""
        for session in list(self._sessions.values()):
            await session.orchestrator.cancel_pending()

    def _prune(self) -> None:
        threshold = datetime.now(timezone.utc) - timedelta(seconds=self._ttl)
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if session.updated_at < threshold
            and session.orchestrator.state.status is not AnalysisStatus.PROCESSING
        ]
        for session_id in expired:
            del self._sessions[session_id]


__all__ = ["ScanSession", "ScanSessionStore"]
