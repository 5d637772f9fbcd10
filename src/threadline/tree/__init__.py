"""Message tree module for threadline.

Holds the branching conversation in memory and derives the active path.
"""

from .builder import build_tree, normalize_record
from .insights import BranchInsights, branch_jump_points, compute_branch_insights
from .linearize import linearize
from .models import HydrationMode, HydrationResult, ImageAttachment, Message, MessageRole
from .store import HeadRef, MessageStore
from .tree import MessageTree

__all__ = [
    "BranchInsights",
    "HeadRef",
    "HydrationMode",
    "HydrationResult",
    "ImageAttachment",
    "Message",
    "MessageRole",
    "MessageStore",
    "MessageTree",
    "branch_jump_points",
    "build_tree",
    "compute_branch_insights",
    "linearize",
    "normalize_record",
]
