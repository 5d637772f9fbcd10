"""Ordered queue of outgoing messages not yet dispatched.

Input typed while a response is still streaming is captured here in order.
Each enqueued item is chained onto the previous one and mirrored into the
tree as a ``queued`` placeholder so it shows up immediately.
"""

import logging
from collections import deque
from collections.abc import Iterable
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from ..config import QUEUED_ID_PREFIX
from ..tree.models import ImageAttachment, Message, MessageRole
from ..tree.tree import MessageTree

logger = logging.getLogger(__name__)


class QueuedMessage(BaseModel):
    """A user message waiting for dispatch."""

    model_config = ConfigDict(frozen=True)

    content: str
    images: list[ImageAttachment] | None = None
    temp_id: str = Field(default_factory=lambda: f"{QUEUED_ID_PREFIX}{uuid4().hex[:12]}")
    parent_id: str | None = Field(default=None, description="Previous queued item or head at enqueue time")
    session_id: str

    def to_placeholder(self, parent_id: str | None = None) -> Message:
        """Placeholder message standing in for this item in the tree."""
        return Message(
            id=self.temp_id,
            role=MessageRole.USER,
            content=self.content,
            parent_id=parent_id if parent_id is not None else self.parent_id,
            images=list(self.images) if self.images else None,
            session_id=self.session_id,
            queued=True,
            temp_id=self.temp_id,
        )


class PendingQueue:
    """FIFO of queued messages, possibly spanning several sessions."""

    def __init__(self, tree: MessageTree):
        self._tree = tree
        self._items: deque[QueuedMessage] = deque()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    @property
    def items(self) -> list[QueuedMessage]:
        """Snapshot of queued items, oldest first."""
        return list(self._items)

    def enqueue(
        self,
        content: str,
        session_id: str | None,
        images: list[ImageAttachment] | None = None
    ) -> QueuedMessage | None:
        """Queue a message for the given session.

        The parent is the last queued item's temp id if there is one,
        otherwise the current head. A placeholder is appended to the tree
        right away.

        Args:
            content: Message text
            session_id: Active session; None makes this a no-op
            images: Optional attachments

        Returns:
            The queued item, or None if no session is active
        """
        if not session_id:
            logger.debug("Ignoring enqueue with no active session")
            return None

        parent_id = self._items[-1].temp_id if self._items else self._tree.head_ref.current
        item = QueuedMessage(
            content=content,
            images=images,
            parent_id=parent_id,
            session_id=session_id,
        )
        self._items.append(item)
        self._tree.append(item.to_placeholder(), parent_id)
        logger.debug("Queued %s for session %s (%d pending)", item.temp_id, session_id, len(self._items))
        return item

    def pop_next(self) -> QueuedMessage | None:
        """Remove and return the oldest item."""
        return self._items.popleft() if self._items else None

    def push_front(self, item: QueuedMessage) -> None:
        """Return an item to the head of the queue after a failed attempt."""
        self._items.appendleft(item)

    def discard(self, temp_ids: Iterable[str]) -> list[QueuedMessage]:
        """Drop items whose placeholders were removed from the tree.

        Returns:
            The dropped items, oldest first
        """
        wanted = set(temp_ids)
        dropped = [item for item in self._items if item.temp_id in wanted]
        if dropped:
            self._items = deque(item for item in self._items if item.temp_id not in wanted)
        return dropped

    def for_session(self, session_id: str) -> list[QueuedMessage]:
        """Queued items targeting ``session_id``, oldest first."""
        return [item for item in self._items if item.session_id == session_id]

    def clear(self) -> None:
        self._items.clear()
