"""Rebuild a branching tree from a flat, ordered message log.

Hides how parent links are recovered from backend records:
- Id assignment (provided id or positional fallback)
- Choice between explicit parent references and an inferred linear chain
- Coercion of malformed fields to safe defaults
- Cycle breaking among explicit references
"""

import json
import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from ..config import POSITIONAL_ID_PREFIX
from .models import HydrationMode, HydrationResult, ImageAttachment, Message, MessageRole

logger = logging.getLogger(__name__)

_PARENT_KEYS = ("parentId", "parent_id")


def _to_message_id(value: Any, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    if isinstance(value, bool):
        return fallback
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and math.isfinite(value):
        return str(int(value)) if value.is_integer() else str(value)
    return fallback


def _to_parent_ref(record: Mapping[str, Any]) -> tuple[bool, str | None]:
    """Return (field present, normalized parent id)."""
    present = any(key in record for key in _PARENT_KEYS)
    raw = record.get("parentId")
    if raw is None:
        raw = record.get("parent_id")
    if raw is None:
        return present, None
    parent = _to_message_id(raw, "")
    return present, parent or None


def _to_stats(value: Any) -> dict[str, Any] | None:
    if not value:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    return dict(value) if isinstance(value, Mapping) else None


def _to_images(value: Any) -> list[ImageAttachment] | None:
    if not isinstance(value, list):
        return None
    images = []
    for item in value:
        try:
            images.append(ImageAttachment.model_validate(item))
        except ValidationError:
            logger.debug("Dropping malformed image attachment")
    return images


def _to_citations(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [c for c in value if isinstance(c, str)]


def normalize_record(raw: Any, index: int) -> tuple[Message, bool, str | None]:
    """Coerce one backend record into a parentless ``Message``.

    Args:
        raw: Record as decoded from JSON (anything, ideally a dict)
        index: Position in the batch, used for the fallback id

    Returns:
        Tuple of (message, parent field present, parent candidate)
    """
    record: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
    message_id = _to_message_id(record.get("id"), f"{POSITIONAL_ID_PREFIX}{index}")
    present, parent_candidate = _to_parent_ref(record)

    content = record.get("content")
    thought = record.get("thought")
    session_id = record.get("sessionId")

    message = Message(
        id=message_id,
        role=MessageRole.USER if record.get("role") == "user" else MessageRole.MODEL,
        content=content if isinstance(content, str) else "",
        stats=_to_stats(record.get("stats")),
        thought=thought if isinstance(thought, str) else None,
        citations=_to_citations(record.get("citations")),
        images=_to_images(record.get("images")),
        session_id=session_id if isinstance(session_id, str) else None,
        error=bool(record.get("error")),
    )
    return message, present, parent_candidate


def _break_cycles(messages: dict[str, Message], order: list[str]) -> list[str]:
    """Make the earliest member of every parent cycle a root.

    Returns the ids that were detached.
    """
    rank: dict[str, int] = {}
    for position, mid in enumerate(order):
        rank.setdefault(mid, position)

    on_path, resolved = 1, 2
    state: dict[str, int] = {}
    detached: list[str] = []

    for start in order:
        if state.get(start) == resolved:
            continue
        path: list[str] = []
        current: str | None = start
        while current is not None and current in messages and current not in state:
            state[current] = on_path
            path.append(current)
            current = messages[current].parent_id

        if current is not None and state.get(current) == on_path:
            cycle = path[path.index(current):]
            root = min(cycle, key=rank.__getitem__)
            messages[root].parent_id = None
            detached.append(root)
            logger.warning("Broke parent cycle of %d messages at %s", len(cycle), root)

        for mid in path:
            state[mid] = resolved

    return detached


def build_tree(
    records: Sequence[Any],
    session: Mapping[str, Any] | None = None
) -> HydrationResult:
    """Reconstruct parent links for one session's flat message log.

    If any record carries a parent field (even a null one) every record's own
    reference is trusted; unknown or self references become roots. Otherwise
    the batch is chained in input order. The two modes are never mixed.

    Args:
        records: Raw records in backend order
        session: Optional session metadata to carry through

    Returns:
        HydrationResult whose head is the last record in input order
    """
    entries = [normalize_record(raw, index) for index, raw in enumerate(records)]
    known_ids = {message.id for message, _, _ in entries}
    explicit = any(present for _, present, _ in entries)
    mode = HydrationMode.EXPLICIT if explicit else HydrationMode.INFERRED

    messages: dict[str, Message] = {}
    order: list[str] = []
    previous_id: str | None = None

    for message, _, candidate in entries:
        if message.id in messages:
            logger.debug("Duplicate message id %s in hydration batch; keeping the later record", message.id)

        if mode is HydrationMode.EXPLICIT:
            if candidate is not None and candidate in known_ids and candidate != message.id:
                message.parent_id = candidate
            elif candidate is not None:
                logger.debug("Message %s references unknown parent %s; treating as root", message.id, candidate)
        elif previous_id is not None and previous_id != message.id:
            message.parent_id = previous_id

        messages[message.id] = message
        order.append(message.id)
        previous_id = message.id

    _break_cycles(messages, order)

    head_id = order[-1] if order else None
    return HydrationResult(
        messages=messages,
        head_id=head_id,
        mode=mode,
        session=dict(session) if isinstance(session, Mapping) else None,
    )
