"""Derive the displayed root-to-head path from the tree."""

import logging
from collections.abc import Mapping

from ..config import MAX_ANCESTOR_DEPTH
from .models import Message
from .store import MessageStore

logger = logging.getLogger(__name__)


def linearize(
    head_id: str | None,
    store: MessageStore | Mapping[str, Message],
    max_depth: int = MAX_ANCESTOR_DEPTH
) -> list[Message]:
    """Walk parent links up from ``head_id`` and return the path root first.

    The walk stops at a root, at an id missing from the store, at the first
    repeated id, or after ``max_depth`` hops. Truncation is logged, never
    raised.

    Args:
        head_id: Tip of the active branch (None gives an empty path)
        store: Messages by id
        max_depth: Hop cap against corrupted chains

    Returns:
        Messages ordered from root to head
    """
    path: list[Message] = []
    seen: set[str] = set()
    current = head_id

    while current is not None:
        if len(path) >= max_depth:
            logger.debug("Ancestor walk from %s truncated at %d hops", head_id, max_depth)
            break
        if current in seen:
            logger.debug("Ancestor walk from %s revisited %s; stopping", head_id, current)
            break
        message = store.get(current)
        if message is None:
            break
        seen.add(current)
        path.append(message)
        current = message.parent_id

    path.reverse()
    return path
