"""Mutation API over the message store.

``MessageTree`` owns the store and the head pointer. Every mutation writes
the head value and its ``HeadRef`` mirror together, then notifies
subscribers. The displayed path is always recomputed from (head, store).
"""

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any
from uuid import uuid4

from ..config import MAX_ANCESTOR_DEPTH, TEMP_ID_PREFIX
from .linearize import linearize
from .models import HydrationResult, Message
from .store import HeadRef, MessageStore

logger = logging.getLogger(__name__)

ChangeListener = Callable[["MessageTree"], None]

_IMMUTABLE_FIELDS = frozenset({"id", "parent_id"})


class MessageTree:
    """Branching conversation with a single active head."""

    def __init__(self, store: MessageStore | None = None):
        self._store = store or MessageStore()
        self._head_id: str | None = None
        self.head_ref = HeadRef()
        self._listeners: list[ChangeListener] = []

    @property
    def store(self) -> MessageStore:
        return self._store

    @property
    def head_id(self) -> str | None:
        return self._head_id

    @property
    def messages(self) -> list[Message]:
        """Active path from root to head."""
        return linearize(self._head_id, self._store)

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_head(self, head_id: str | None) -> None:
        self._head_id = head_id
        self.head_ref.current = head_id

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def load(self, result: HydrationResult) -> None:
        """Replace the whole tree with a hydration result."""
        self._store.replace(result.messages)
        self._set_head(result.head_id)
        self._notify()

    def reset(self) -> None:
        """Discard every message and the head."""
        self._store.clear()
        self._set_head(None)
        self._notify()

    def set_head(self, message_id: str | None) -> None:
        """Make ``message_id`` the tip of the active branch.

        Raises:
            KeyError: If the id is not in the store
        """
        if message_id is not None and message_id not in self._store:
            raise KeyError(f"Message not found: {message_id}")
        self._set_head(message_id)
        self._notify()

    def _reaches(self, start: str | None, target: str) -> bool:
        current = start
        for _ in range(MAX_ANCESTOR_DEPTH):
            if current is None:
                return False
            if current == target:
                return True
            message = self._store.get(current)
            current = message.parent_id if message else None
        return False

    def append(self, message: Message, parent_id: str | None = None) -> str:
        """Insert ``message`` under ``parent_id`` and move head to it.

        Head always moves, even when ``parent_id`` is not the current head;
        that is how regenerating under an earlier turn forks a new branch.
        An unknown parent makes the message a root.

        Args:
            message: Message to insert; an empty id gets a fresh one
            parent_id: Parent id, or None for a root

        Returns:
            Id under which the message was stored
        """
        new_id = message.id or f"{TEMP_ID_PREFIX}{uuid4().hex}"
        parent = parent_id or None

        if parent is not None and parent not in self._store:
            logger.debug("Appending %s under unknown parent %s as a root", new_id, parent)
            parent = None
        if parent is not None and self._reaches(parent, new_id):
            logger.warning("Appending %s under %s would form a cycle; storing as a root", new_id, parent)
            parent = None

        self._store.put(message.model_copy(update={"id": new_id, "parent_id": parent}))
        self._set_head(new_id)
        self._notify()
        return new_id

    def update(self, message_id: str, **fields: Any) -> bool:
        """Merge ``fields`` into an existing message in place.

        Never changes the parent link or the head.

        Returns:
            True if the message existed

        Raises:
            ValueError: If a field is unknown or immutable
        """
        immutable = _IMMUTABLE_FIELDS & fields.keys()
        if immutable:
            raise ValueError(f"Cannot update immutable fields: {sorted(immutable)}")
        unknown = fields.keys() - Message.model_fields.keys()
        if unknown:
            raise ValueError(f"Unknown message fields: {sorted(unknown)}")

        message = self._store.get(message_id)
        if message is None:
            return False
        for name, value in fields.items():
            setattr(message, name, value)
        self._notify()
        return True

    def accumulate(self, message_id: str, content: str = "", thought: str = "") -> bool:
        """Append streamed deltas to a message's content and thought."""
        message = self._store.get(message_id)
        if message is None:
            return False
        updates: dict[str, Any] = {}
        if content:
            updates["content"] = message.content + content
        if thought:
            updates["thought"] = (message.thought or "") + thought
        if not updates:
            return True
        return self.update(message_id, **updates)

    def prune(self, root_id: str) -> list[str]:
        """Remove ``root_id`` and all of its descendants.

        Head moves to the removed root's former parent (None for a root).
        Pruning an absent id is a no-op.

        Returns:
            Ids that were removed, root first
        """
        root = self._store.get(root_id)
        if root is None:
            return []

        children: dict[str, list[str]] = defaultdict(list)
        for mid, message in self._store.items():
            if message.parent_id is not None:
                children[message.parent_id].append(mid)

        removed: list[str] = []
        seen: set[str] = set()
        stack = [root_id]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            removed.append(current)
            stack.extend(children.get(current, ()))

        for mid in removed:
            self._store.remove(mid)

        former_parent = root.parent_id
        self._set_head(former_parent if former_parent in self._store else None)
        self._notify()
        return removed

    def children(self, message_id: str) -> list[Message]:
        """Direct children of a message, in insertion order."""
        return [self._store[mid] for mid in self._store.children_of(message_id)]
