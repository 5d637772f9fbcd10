"""Shape statistics for a branching conversation."""

from collections import deque
from collections.abc import Mapping

from pydantic import BaseModel, Field

from ..config import MAX_BRANCH_JUMPS
from .models import Message
from .store import MessageStore


class BranchInsights(BaseModel):
    """Summary of how a conversation tree has branched."""

    node_count: int = Field(default=0, ge=0)
    leaf_count: int = Field(default=0, ge=0)
    branch_point_ids: list[str] = Field(
        default_factory=list,
        description="Messages with more than one child, shallowest first"
    )
    max_depth: int = Field(default=0, ge=0)
    active_depth: int = Field(default=0, ge=0, description="Hops from the head to its root")


def compute_branch_insights(
    store: MessageStore | Mapping[str, Message],
    head_id: str | None
) -> BranchInsights:
    """Compute node, leaf, branch-point and depth statistics.

    Args:
        store: Messages by id
        head_id: Tip of the active branch

    Returns:
        BranchInsights for the tree
    """
    messages = {mid: store[mid] for mid in store}
    if not messages:
        return BranchInsights()

    children: dict[str, list[str]] = {mid: [] for mid in messages}
    for mid, message in messages.items():
        if message.parent_id in children:
            children[message.parent_id].append(mid)

    roots = [mid for mid, message in messages.items() if message.parent_id not in children]
    if not roots:
        roots = [next(iter(messages))]

    depth_by_id: dict[str, int] = {}
    queue = deque((root, 0) for root in roots)
    while queue:
        mid, depth = queue.popleft()
        if mid in depth_by_id:
            continue
        depth_by_id[mid] = depth
        queue.extend((child, depth + 1) for child in children[mid])

    branch_points = sorted(
        (mid for mid, kids in children.items() if len(kids) > 1),
        key=lambda mid: depth_by_id.get(mid, 0)
    )

    active_depth = 0
    cursor = head_id
    visited: set[str] = set()
    while cursor in messages and cursor not in visited:
        visited.add(cursor)
        parent = messages[cursor].parent_id
        if parent is None:
            break
        active_depth += 1
        cursor = parent

    return BranchInsights(
        node_count=len(messages),
        leaf_count=sum(1 for kids in children.values() if not kids),
        branch_point_ids=branch_points,
        max_depth=max(depth_by_id.values(), default=0),
        active_depth=active_depth,
    )


def branch_jump_points(
    insights: BranchInsights,
    store: MessageStore | Mapping[str, Message],
    limit: int = MAX_BRANCH_JUMPS
) -> list[Message]:
    """Branch-point messages still present in the store, capped at ``limit``."""
    found = [store.get(mid) for mid in insights.branch_point_ids]
    return [message for message in found if message is not None][:limit]
