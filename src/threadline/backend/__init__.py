"""Session backend module for threadline.

Reaches the server that owns session persistence and job status.
"""

from .base import SessionBackend
from .factory import create_session_backend
from .in_memory import InMemorySessionBackend
from .models import JobStatus, SessionPayload, SessionSummary

__all__ = [
    "InMemorySessionBackend",
    "JobStatus",
    "SessionBackend",
    "SessionPayload",
    "SessionSummary",
    "create_session_backend",
]
