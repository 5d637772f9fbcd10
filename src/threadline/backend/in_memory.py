"""In-memory session backend.

Dict-based storage for tests and offline demos. Counts calls so callers
can observe how often hydration and polling happen.
"""

from collections import Counter
from typing import Any

from ..errors import BackendError, HydrationError
from .base import SessionBackend
from .models import JobStatus, SessionPayload, SessionSummary


class InMemorySessionBackend(SessionBackend):
    """Session backend held entirely in memory."""

    def __init__(
        self,
        sessions: dict[str, dict[str, Any]] | None = None,
        summaries: list[dict[str, Any]] | None = None,
        core_summaries: list[dict[str, Any]] | None = None
    ):
        self._sessions: dict[str, dict[str, Any]] = dict(sessions or {})
        self._summaries = [SessionSummary.model_validate(s) for s in summaries or []]
        self._core_summaries = [SessionSummary.model_validate(s) for s in core_summaries or []]
        self._running: set[str] = set()
        self._failing: set[str] = set()
        self.calls: Counter[str] = Counter()

    async def connect(self) -> None:
        """Initialize backend (no-op for in-memory)."""
        pass

    async def disconnect(self) -> None:
        """Close backend (no-op for in-memory)."""
        pass

    def put_session(
        self,
        session_id: str,
        messages: list[Any],
        session: dict[str, Any] | None = None
    ) -> None:
        """Store or replace a session's message log."""
        self._sessions[session_id] = {"messages": list(messages), "session": session}

    def set_running(self, session_id: str, running: bool = True) -> None:
        """Mark a session as having a server-side job in progress."""
        if running:
            self._running.add(session_id)
        else:
            self._running.discard(session_id)

    def set_failing(self, session_id: str, failing: bool = True) -> None:
        """Make fetches of a session fail."""
        if failing:
            self._failing.add(session_id)
        else:
            self._failing.discard(session_id)

    async def fetch_session(self, session_id: str) -> SessionPayload:
        self.calls["fetch_session"] += 1
        if session_id in self._failing:
            raise HydrationError(session_id, status=500)
        data = self._sessions.get(session_id)
        if data is None:
            raise HydrationError(session_id, "session not found", status=404)
        return SessionPayload.model_validate(data)

    async def fetch_sessions(self) -> list[SessionSummary]:
        self.calls["fetch_sessions"] += 1
        return list(self._summaries)

    async def fetch_core_sessions(self) -> list[SessionSummary]:
        self.calls["fetch_core_sessions"] += 1
        return list(self._core_summaries)

    async def fetch_job_status(self, session_id: str) -> JobStatus:
        self.calls["fetch_job_status"] += 1
        if session_id in self._failing:
            raise BackendError(f"status check failed for {session_id}", status=500)
        return JobStatus(has_running_jobs=session_id in self._running)

    async def delete_session(self, session_id: str) -> None:
        self.calls["delete_session"] += 1
        self._sessions.pop(session_id, None)
        self._summaries = [s for s in self._summaries if s.id != session_id]
        self._core_summaries = [s for s in self._core_summaries if s.id != session_id]

    @property
    def backend_type(self) -> str:
        return "memory"
