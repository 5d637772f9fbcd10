"""Active-session tracking and hydration.

``SessionBinder`` decides which session the tree belongs to. Every switch
bumps an epoch; a hydration that resolves after the epoch moved on is
discarded so a stale log never lands in another session's tree.
"""

import logging
from typing import Any

from ..backend.base import SessionBackend
from ..backend.models import SessionSummary
from ..errors import BackendError
from ..pending.queue import PendingQueue
from ..tree.builder import build_tree
from ..tree.models import HydrationResult
from ..tree.tree import MessageTree
from .merge import merge_sessions

logger = logging.getLogger(__name__)


class SessionBinder:
    """Binds a ``MessageTree`` to one backend session at a time."""

    def __init__(
        self,
        backend: SessionBackend,
        tree: MessageTree,
        queue: PendingQueue | None = None
    ):
        """Initialize the binder.

        Args:
            backend: Source of truth for sessions
            tree: Tree to hydrate
            queue: Pending queue whose placeholders survive re-hydration
        """
        self._backend = backend
        self.tree = tree
        self._queue = queue
        self._current_session_id: str | None = None
        self._current_workspace: str | None = None
        self._sessions: list[SessionSummary] = []
        self._epoch = 0
        self.is_loading = False

    @property
    def current_session_id(self) -> str | None:
        return self._current_session_id

    @property
    def current_workspace(self) -> str | None:
        return self._current_workspace

    @property
    def sessions(self) -> list[SessionSummary]:
        return list(self._sessions)

    def find_session(self, session_id: str) -> SessionSummary | None:
        return next((s for s in self._sessions if s.id == session_id), None)

    def set_current_session(self, session_id: str | None, workspace: str | None = None) -> None:
        """Adopt a session id without hydrating, e.g. after the server creates one."""
        self._epoch += 1
        self._current_session_id = session_id
        if workspace is not None:
            self._current_workspace = workspace

    async def refresh_sessions(self) -> list[SessionSummary]:
        """Reload the session list from both sources.

        A failing source contributes nothing; the other is still used.
        The previous list is kept when both fail.

        Raises:
            BackendError: If neither source could be fetched
        """
        persisted: list[SessionSummary] = []
        core: list[SessionSummary] = []
        failures: list[BackendError] = []
        try:
            persisted = await self._backend.fetch_sessions()
        except BackendError as e:
            logger.warning("Failed to fetch sessions: %s", e)
            failures.append(e)
        try:
            core = await self._backend.fetch_core_sessions()
        except BackendError as e:
            logger.warning("Failed to fetch core sessions: %s", e)
            failures.append(e)
        if len(failures) == 2:
            raise BackendError("session list unavailable", status=failures[0].status) from failures[0]
        self._sessions = merge_sessions(persisted, core)
        return self.sessions

    def _merge_placeholders(self, result: HydrationResult, session_id: str) -> None:
        if self._queue is None:
            return
        for item in self._queue.for_session(session_id):
            if item.temp_id not in result.messages:
                result.messages[item.temp_id] = item.to_placeholder(item.parent_id or result.head_id)

    async def load_session_tree(self, session_id: str) -> HydrationResult | None:
        """Fetch, rebuild and install the tree for the active session.

        Returns:
            The installed result, or None if the session changed while the
            fetch was in flight

        Raises:
            HydrationError: If the fetch fails
        """
        epoch = self._epoch
        payload = await self._backend.fetch_session(session_id)
        if epoch != self._epoch or session_id != self._current_session_id:
            logger.debug("Discarding stale hydration of %s", session_id)
            return None

        result = build_tree(payload.messages, payload.session)
        self._merge_placeholders(result, session_id)
        self.tree.load(result)
        return result

    async def reload(self) -> HydrationResult | None:
        """Re-hydrate the active session, if any."""
        if self._current_session_id is None:
            return None
        return await self.load_session_tree(self._current_session_id)

    async def select_session(self, session_id: str) -> HydrationResult | None:
        """Switch to an existing session and hydrate it.

        On failure the previous session stays active and the error is
        re-raised for the caller to surface.

        Returns:
            The hydration result, or None if already active or overtaken by
            a later switch

        Raises:
            HydrationError: If the session could not be loaded
        """
        if session_id == self._current_session_id:
            return None

        previous = (self._current_session_id, self._current_workspace)
        summary = self.find_session(session_id)
        self.set_current_session(session_id)
        self._current_workspace = summary.workspace if summary else None
        epoch = self._epoch

        self.is_loading = True
        try:
            result = await self.load_session_tree(session_id)
        except Exception as e:
            logger.error("Failed to load session %s: %s", session_id, e)
            if epoch == self._epoch:
                self._epoch += 1
                self._current_session_id, self._current_workspace = previous
            raise
        finally:
            self.is_loading = False

        if result is not None and summary is None and result.workspace:
            self._current_workspace = result.workspace
        if result is not None:
            logger.info("Selected session %s (%d messages)", session_id, len(result.messages))
        return result

    def new_chat(self, workspace: str | None = None) -> None:
        """Leave the current session and clear the tree without hydrating."""
        self._epoch += 1
        self._current_session_id = None
        self._current_workspace = workspace
        self.tree.reset()

    async def delete_session(self, session_id: str) -> None:
        """Delete a session on the backend and forget it locally."""
        await self._backend.delete_session(session_id)
        self._sessions = [s for s in self._sessions if s.id != session_id]
        if self._current_session_id == session_id:
            self.new_chat()

    def update_session(self, session_id: str, **fields: Any) -> SessionSummary | None:
        """Patch a local session summary (e.g. a new title)."""
        for index, summary in enumerate(self._sessions):
            if summary.id == session_id:
                self._sessions[index] = summary.model_copy(update=fields)
                return self._sessions[index]
        return None
