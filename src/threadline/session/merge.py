"""Merge of the two session-list sources."""

from collections.abc import Iterable

from ..backend.models import SessionSummary


def merge_sessions(
    persisted: Iterable[SessionSummary],
    core: Iterable[SessionSummary]
) -> list[SessionSummary]:
    """Combine persisted and core session summaries.

    Persisted entries win on id collisions. The result is sorted by last
    update, newest first; ties keep source order.

    Args:
        persisted: Summaries from the database-backed list
        core: Summaries of ephemeral core sessions

    Returns:
        De-duplicated, sorted summaries
    """
    merged: dict[str, SessionSummary] = {}
    for summary in persisted:
        merged.setdefault(summary.id, summary)
    for summary in core:
        merged.setdefault(summary.id, summary)
    return sorted(merged.values(), key=lambda s: s.updated_timestamp(), reverse=True)
