"""Exception hierarchy for the branch manager.

Only failures the caller must act on are raised. Malformed records, dangling
parent references, runaway ancestor chains and stale async results are
recovered where they are detected.
"""


class ThreadlineError(Exception):
    """Base class for branch manager errors."""


class BackendError(ThreadlineError):
    """Backend request failed (transport, timeout, status or payload)."""

    def __init__(self, message: str, status: int | None = None):
        msg = f"Backend error: {message}"
        if status is not None:
            msg += f" (status {status})"
        super().__init__(msg)
        self.status = status


class HydrationError(BackendError):
    """Loading a session's message log failed."""

    def __init__(self, session_id: str, message: str = "failed to load session", status: int | None = None):
        super().__init__(f"{message}: {session_id}", status=status)
        self.session_id = session_id


class BusyError(ThreadlineError):
    """A dispatch or queue drain is already in flight."""

    def __init__(self, message: str = "A dispatch is already in progress"):
        super().__init__(message)
