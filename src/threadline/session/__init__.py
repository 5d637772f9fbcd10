"""Session binding module for threadline.

Tracks the active session, merges session lists and keeps the tree in sync
with server-side progress.
"""

from .binder import SessionBinder
from .merge import merge_sessions
from .visibility import VisibilityPoller

__all__ = [
    "SessionBinder",
    "VisibilityPoller",
    "merge_sessions",
]
