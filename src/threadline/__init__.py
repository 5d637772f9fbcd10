"""
Threadline: branching conversation manager.

Rebuilds a branching message history from a flat log, keeps one active path
through it, forks and prunes branches, and queues outgoing input so nothing
typed during a streaming reply is dropped or reordered.
"""

__version__ = "0.1.0"

from .backend import SessionBackend, create_session_backend
from .errors import BackendError, BusyError, HydrationError, ThreadlineError
from .manager import BranchManager
from .pending import PendingQueue, QueuedMessage, QueueProcessor
from .session import SessionBinder, VisibilityPoller, merge_sessions
from .tree import HydrationMode, HydrationResult, Message, MessageRole, MessageTree, build_tree, linearize

__all__ = [
    "BackendError",
    "BranchManager",
    "BusyError",
    "HydrationError",
    "HydrationMode",
    "HydrationResult",
    "Message",
    "MessageRole",
    "MessageTree",
    "PendingQueue",
    "QueueProcessor",
    "QueuedMessage",
    "SessionBackend",
    "SessionBinder",
    "ThreadlineError",
    "VisibilityPoller",
    "build_tree",
    "create_session_backend",
    "linearize",
    "merge_sessions",
]
