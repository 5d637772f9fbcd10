"""Strictly sequential dispatch of queued messages.

One item is in flight at a time; parallel dispatch would fork two branches
from the same head. Items for another session hydrate that session first
and only then resolve their parent.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from ..config import MAX_ANCESTOR_DEPTH
from ..errors import BusyError
from .queue import PendingQueue, QueuedMessage

if TYPE_CHECKING:
    from ..session.binder import SessionBinder

logger = logging.getLogger(__name__)

# Called as dispatch(text, parent_id=..., images=..., reuse_message_id=..., session_id=...).
# Owned by the surrounding controller: it performs the request, appends the
# confirmed user turn (reusing the placeholder id) and streams the model turn.
Dispatch = Callable[..., Awaitable[None]]


class QueueProcessor:
    """Drains a ``PendingQueue`` through an injected dispatcher."""

    def __init__(self, queue: PendingQueue, binder: "SessionBinder", dispatch: Dispatch):
        self._queue = queue
        self._binder = binder
        self._dispatch = dispatch
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def _skip_placeholders(self, message_id: str | None) -> str | None:
        """Climb past queued placeholders to the newest confirmed message."""
        store = self._binder.tree.store
        current = message_id
        for _ in range(MAX_ANCESTOR_DEPTH):
            message = store.get(current)
            if message is None or not message.queued:
                return current
            current = message.parent_id
        return None

    async def _resolve_parent(self, item: QueuedMessage) -> tuple[bool, str | None]:
        """Return (still current, effective parent id) for ``item``."""
        tree = self._binder.tree
        if item.session_id != self._binder.current_session_id:
            logger.info(
                "Switching session from %s to %s for queued message",
                self._binder.current_session_id,
                item.session_id
            )
            result = await self._binder.select_session(item.session_id)
            if result is None:
                return False, None
            candidate = item.parent_id if item.parent_id in tree.store else result.head_id
        else:
            candidate = tree.head_ref.current
        return True, self._skip_placeholders(candidate)

    async def process_next(self) -> bool:
        """Dispatch the oldest queued item.

        An item whose session fails to load, for any reason, or is
        overtaken by another session switch goes back to the front of the
        queue.

        Returns:
            True if an item was dispatched

        Raises:
            BusyError: If called while already processing
            HydrationError: If the target session could not be loaded
        """
        if self._running:
            raise BusyError("Queue processor is already running")
        item = self._queue.pop_next()
        if item is None:
            return False

        self._running = True
        try:
            try:
                current, parent_id = await self._resolve_parent(item)
            except Exception:
                self._queue.push_front(item)
                raise
            if not current:
                logger.debug("Session changed while loading %s; re-queueing %s", item.session_id, item.temp_id)
                self._queue.push_front(item)
                return False

            await self._dispatch(
                item.content,
                parent_id=parent_id,
                images=item.images,
                reuse_message_id=item.temp_id,
                session_id=item.session_id,
            )
            return True
        finally:
            self._running = False

    async def drain(self) -> int:
        """Process items until the queue is empty or an item is deferred.

        Returns:
            Number of items dispatched
        """
        dispatched = 0
        while self._queue:
            if not await self.process_next():
                break
            dispatched += 1
        return dispatched
