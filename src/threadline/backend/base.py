"""Abstract base class for session backends.

This module defines the interface the branch manager uses to reach the
source of truth. The abstraction hides:
- Transport (HTTP, in-process)
- Endpoint layout and authentication
- Connection management
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import JobStatus, SessionPayload, SessionSummary


class SessionBackend(ABC):
    """Abstract session backend.

    Supports async context manager protocol:
        async with backend:
            payload = await backend.fetch_session(session_id)
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open any connections the backend needs."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the backend gracefully."""

    @abstractmethod
    async def fetch_session(self, session_id: str) -> SessionPayload:
        """Fetch one session's full message log.

        Raises:
            HydrationError: If the session cannot be loaded
        """

    @abstractmethod
    async def fetch_sessions(self) -> list[SessionSummary]:
        """List persisted sessions."""

    @abstractmethod
    async def fetch_core_sessions(self) -> list[SessionSummary]:
        """List ephemeral core sessions."""

    @abstractmethod
    async def fetch_job_status(self, session_id: str) -> JobStatus:
        """Report whether a session has a job running server-side."""

    @abstractmethod
    async def delete_session(self, session_id: str) -> None:
        """Delete a session."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def __aenter__(self) -> "SessionBackend":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()
