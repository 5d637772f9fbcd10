"""HTTP session backend using aiohttp.

Hidden design decisions:
- Endpoint paths and query parameters
- Client session lifecycle and timeouts
- Bearer authentication
- Mapping of transport and status failures onto ``BackendError``
"""

import asyncio
import logging
from typing import Any

import aiohttp
from pydantic import ValidationError

from ..errors import BackendError, HydrationError
from .base import SessionBackend
from .models import JobStatus, SessionPayload, SessionSummary

logger = logging.getLogger(__name__)


class HttpSessionBackend(SessionBackend):
    """Session backend talking to the chat server's REST API."""

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        timeout: float = 30.0,
        api_token: str | None = None,
        session: aiohttp.ClientSession | None = None
    ):
        """Initialize HTTP backend.

        Args:
            base_url: Server root URL
            timeout: Total request timeout in seconds
            api_token: Optional bearer token
            session: Existing client session to reuse (not closed on disconnect)
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}
        self._session = session
        self._owns_session = session is None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def connect(self) -> None:
        """Create the client session if none was supplied."""
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout, headers=self._headers)
            self._owns_session = True

    async def disconnect(self) -> None:
        """Close the client session if this backend created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        if self._session is None:
            await self.connect()
        url = f"{self._base_url}{path}"
        try:
            async with self._session.request(method, url, **kwargs) as resp:
                if resp.status < 200 or resp.status >= 300:
                    raise BackendError(f"{method} {path} failed", status=resp.status)
                if resp.status == 204:
                    return None
                return await resp.json(content_type=None)
        except aiohttp.ClientError as e:
            raise BackendError(f"{method} {path}: {e}") from e
        except asyncio.TimeoutError as e:
            raise BackendError(f"{method} {path} timed out") from e
        except ValueError as e:
            raise BackendError(f"{method} {path} returned invalid JSON") from e

    async def fetch_session(self, session_id: str) -> SessionPayload:
        """Fetch a session's message log.

        Raises:
            HydrationError: On transport failure, non-2xx status or bad payload
        """
        try:
            data = await self._request("GET", f"/api/sessions/{session_id}")
        except BackendError as e:
            raise HydrationError(session_id, status=e.status) from e
        if not isinstance(data, dict):
            raise HydrationError(session_id, "unexpected session payload")
        return SessionPayload.model_validate(data)

    async def _fetch_summaries(self, path: str) -> list[SessionSummary]:
        data = await self._request("GET", path)
        if not isinstance(data, list):
            raise BackendError(f"GET {path} did not return a list")
        summaries = []
        for item in data:
            try:
                summaries.append(SessionSummary.model_validate(item))
            except ValidationError:
                logger.debug("Skipping malformed session summary from %s", path)
        return summaries

    async def fetch_sessions(self) -> list[SessionSummary]:
        return await self._fetch_summaries("/api/sessions")

    async def fetch_core_sessions(self) -> list[SessionSummary]:
        return await self._fetch_summaries("/api/sessions/core")

    async def fetch_job_status(self, session_id: str) -> JobStatus:
        data = await self._request("GET", "/api/chat/status", params={"sessionId": session_id})
        return JobStatus.model_validate(data if isinstance(data, dict) else {})

    async def delete_session(self, session_id: str) -> None:
        await self._request("DELETE", f"/api/sessions/{session_id}")

    @property
    def backend_type(self) -> str:
        return "http"
