"""In-memory message store and the synchronous head mirror."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from .models import Message


@dataclass
class HeadRef:
    """Mutable cell mirroring the current head id.

    Async callbacks read ``current`` to see the latest head without waiting
    for change notifications to be delivered.
    """

    current: str | None = None


class MessageStore:
    """Mapping from message id to message, with a single logical writer.

    Readers get the live ``Message`` objects; only ``MessageTree`` should
    call the mutating methods.
    """

    def __init__(self, messages: Mapping[str, Message] | None = None):
        self._messages: dict[str, Message] = dict(messages or {})

    def get(self, message_id: str | None) -> Message | None:
        if message_id is None:
            return None
        return self._messages.get(message_id)

    def __getitem__(self, message_id: str) -> Message:
        return self._messages[message_id]

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._messages

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[str]:
        return iter(self._messages)

    def ids(self) -> list[str]:
        return list(self._messages)

    def values(self) -> list[Message]:
        return list(self._messages.values())

    def items(self) -> list[tuple[str, Message]]:
        return list(self._messages.items())

    def children_of(self, message_id: str) -> list[str]:
        """Ids whose parent is ``message_id``, in insertion order."""
        return [mid for mid, msg in self._messages.items() if msg.parent_id == message_id]

    def put(self, message: Message) -> None:
        self._messages[message.id] = message

    def remove(self, message_id: str) -> Message | None:
        return self._messages.pop(message_id, None)

    def replace(self, messages: Mapping[str, Message]) -> None:
        """Swap the whole contents, e.g. after hydration."""
        self._messages = dict(messages)

    def clear(self) -> None:
        self._messages = {}

    def snapshot(self) -> dict[str, Message]:
        """Shallow copy of the id -> message mapping."""
        return dict(self._messages)
