"""Factory for creating session backends."""

from typing import Any

from .base import SessionBackend


def create_session_backend(
    backend: str = "http",
    **kwargs: Any
) -> SessionBackend:
    """Create a session backend.

    Args:
        backend: Backend type ("http" or "memory")
        **kwargs: Backend-specific configuration

    Returns:
        SessionBackend instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "http":
        from .http import HttpSessionBackend
        return HttpSessionBackend(**kwargs)

    elif backend == "memory":
        from .in_memory import InMemorySessionBackend
        return InMemorySessionBackend(**kwargs)

    raise ValueError(
        f"Unsupported session backend: {backend}. "
        f"Supported backends: http, memory"
    )
