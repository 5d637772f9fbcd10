"""Controller facade over the branch manager components.

``BranchManager`` wires the tree, pending queue, session binder and
visibility poller together and exposes the user-level actions: send,
retry (regenerate) and undo.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .backend.base import SessionBackend
from .backend.models import SessionSummary
from .config import DEFAULT_POLL_INTERVAL
from .errors import BusyError
from .pending import Dispatch, PendingQueue, QueuedMessage, QueueProcessor
from .session import SessionBinder, VisibilityPoller
from .tree import HydrationResult, ImageAttachment, Message, MessageRole, MessageTree

logger = logging.getLogger(__name__)


class BranchManager:
    """Branching conversation state for one client view.

    Usage:
        manager = BranchManager(backend, dispatch)
        await manager.select_session("abc")
        await manager.submit("hello")
    """

    def __init__(
        self,
        backend: SessionBackend,
        dispatch: Dispatch,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """Initialize the manager.

        Args:
            backend: Session source of truth
            dispatch: Sends a message and streams the reply into the tree
            poll_interval: Seconds between job polls while hidden
            sleep: Awaitable used by the poller between ticks
        """
        self.backend = backend
        self.tree = MessageTree()
        self.queue = PendingQueue(self.tree)
        self.binder = SessionBinder(backend, self.tree, self.queue)
        self.processor = QueueProcessor(self.queue, self.binder, dispatch)
        self.poller = VisibilityPoller(self.binder, backend, poll_interval, sleep=sleep)
        self._dispatch = dispatch
        self._busy = False

    @property
    def busy(self) -> bool:
        """True while a dispatch or queue drain is in flight."""
        return self._busy

    @property
    def messages(self) -> list[Message]:
        return self.tree.messages

    @property
    def head_id(self) -> str | None:
        return self.tree.head_id

    @property
    def current_session_id(self) -> str | None:
        return self.binder.current_session_id

    async def _run(self, first: Awaitable[None] | None) -> None:
        self._busy = True
        try:
            if first is not None:
                await first
            await self.processor.drain()
        finally:
            self._busy = False

    async def submit(
        self,
        text: str,
        images: list[ImageAttachment] | None = None,
        parent_id: str | None = None
    ) -> QueuedMessage | None:
        """Send a message now, or queue it behind the one in flight.

        Queued items are drained in order once the current dispatch ends.

        Args:
            text: Message text
            images: Optional attachments
            parent_id: Parent to send under (defaults to the head)

        Returns:
            The queued item when the message was queued, else None
        """
        if self._busy:
            return self.queue.enqueue(text, self.binder.current_session_id, images)

        if self.queue:
            item = self.queue.enqueue(text, self.binder.current_session_id, images)
            await self._run(None)
            return item

        await self._run(self._dispatch(
            text,
            parent_id=parent_id or self.tree.head_ref.current,
            images=images,
            reuse_message_id=None,
            session_id=self.binder.current_session_id,
        ))
        return None

    async def retry(self, message_id: str) -> None:
        """Regenerate a model turn as a new branch under its user turn.

        The user turn is re-dispatched with its own id reused, so the
        dispatcher appends a fresh model reply beside the old one and the
        head moves onto the new branch.

        Raises:
            KeyError: If the message is unknown
            ValueError: If it is not a model turn with a user parent
            BusyError: If a dispatch is already in flight
        """
        message = self.tree.store.get(message_id)
        if message is None:
            raise KeyError(f"Message not found: {message_id}")
        user_turn = self.tree.store.get(message.parent_id)
        if message.role is not MessageRole.MODEL or user_turn is None or user_turn.role is not MessageRole.USER:
            raise ValueError(f"Message {message_id} is not a model reply to a user turn")
        if self._busy:
            raise BusyError()

        await self._run(self._dispatch(
            user_turn.content,
            parent_id=user_turn.parent_id,
            images=user_turn.images,
            reuse_message_id=user_turn.id,
            session_id=self.binder.current_session_id,
        ))

    def undo(self, message_id: str) -> list[str]:
        """Prune a message and everything after it on every branch.

        Queued input whose placeholder is pruned is withdrawn from the queue.
        """
        removed = self.tree.prune(message_id)
        if removed:
            logger.debug("Pruned %d messages from %s", len(removed), message_id)
            dropped = self.queue.discard(removed)
            if dropped:
                logger.debug("Withdrew %d queued messages", len(dropped))
        return removed

    async def refresh_sessions(self) -> list[SessionSummary]:
        return await self.binder.refresh_sessions()

    async def select_session(self, session_id: str) -> HydrationResult | None:
        return await self.binder.select_session(session_id)

    def new_chat(self, workspace: str | None = None) -> None:
        self.binder.new_chat(workspace)

    async def set_visibility(self, visible: bool) -> None:
        await self.poller.set_visibility(visible)

    async def close(self) -> None:
        """Stop background polling."""
        await self.poller.close()
