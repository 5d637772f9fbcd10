"""Pytest configuration and shared fixtures."""
import asyncio

import pytest

from threadline.backend import InMemorySessionBackend
from threadline.tree import Message, MessageRole, MessageTree


class FakeDispatcher:
    """Stands in for the controller's send-and-stream call.

    Appends the user turn (reusing an existing placeholder when asked) and a
    model reply under it, recording every call.
    """

    def __init__(self, tree: MessageTree | None = None):
        self.tree = tree
        self.calls: list[dict] = []
        self.on_dispatch = None

    async def __call__(self, text, *, parent_id=None, images=None, reuse_message_id=None, session_id=None):
        self.calls.append({
            "text": text,
            "parent_id": parent_id,
            "images": images,
            "reuse_message_id": reuse_message_id,
            "session_id": session_id,
        })
        if self.on_dispatch is not None:
            await self.on_dispatch(text)
        if self.tree is None:
            return

        existing = self.tree.store.get(reuse_message_id)
        if existing is not None:
            user_id = self.tree.append(existing.model_copy(update={"queued": False}), parent_id)
        else:
            user_id = self.tree.append(
                Message(id=reuse_message_id or "", role=MessageRole.USER, content=text, session_id=session_id),
                parent_id,
            )
        self.tree.append(
            Message(role=MessageRole.MODEL, content=f"reply to {text}", session_id=session_id),
            user_id,
        )

    @property
    def texts(self) -> list[str]:
        return [call["text"] for call in self.calls]


class ManualClock:
    """Sleep replacement that only returns when ticked."""

    def __init__(self):
        self._ticks: asyncio.Queue[None] = asyncio.Queue()

    async def sleep(self, _seconds: float) -> None:
        await self._ticks.get()

    def tick(self) -> None:
        self._ticks.put_nowait(None)


async def settle(rounds: int = 20) -> None:
    """Let pending tasks run until they block again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def linear_records():
    """Three records without any parent field."""
    return [
        {"id": "m1", "role": "user", "content": "hello"},
        {"id": "m2", "role": "model", "content": "hi there"},
        {"id": "m3", "role": "user", "content": "how are you?"},
    ]


@pytest.fixture
def branching_records():
    """Records with explicit parents forming two branches under m1."""
    return [
        {"id": "m1", "role": "user", "content": "write a poem", "parentId": None},
        {"id": "m2", "role": "model", "content": "roses are red", "parentId": "m1"},
        {"id": "m3", "role": "model", "content": "violets are blue", "parentId": "m1"},
        {"id": "m4", "role": "user", "content": "shorter please", "parentId": "m3"},
    ]


@pytest.fixture
def backend(linear_records, branching_records):
    """In-memory backend with two sessions and a session list."""
    return InMemorySessionBackend(
        sessions={
            "s1": {"messages": linear_records, "session": {"workspace": "/work/alpha"}},
            "s2": {"messages": branching_records, "session": None},
        },
        summaries=[
            {"id": "s1", "title": "Alpha", "updated_at": 2000, "workspace": "/work/alpha"},
            {"id": "s2", "title": "Poems", "updated_at": 1000},
        ],
        core_summaries=[
            {"id": "core-1", "title": "Core run", "lastUpdated": 3000, "isCore": True},
        ],
    )


@pytest.fixture
def tree():
    """Empty message tree."""
    return MessageTree()
