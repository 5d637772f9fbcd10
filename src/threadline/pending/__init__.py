"""Pending message queue for threadline.

Captures input typed while a response streams and dispatches it in order.
"""

from .processor import Dispatch, QueueProcessor
from .queue import PendingQueue, QueuedMessage

__all__ = [
    "Dispatch",
    "PendingQueue",
    "QueueProcessor",
    "QueuedMessage",
]
