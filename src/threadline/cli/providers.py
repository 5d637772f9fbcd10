"""Provider factory functions for CLI.

Centralizes creation of the session backend from environment variables.
Hides configuration details from command implementations.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

from ..backend import SessionBackend, create_session_backend
from ..config import ClientConfig


def get_config() -> ClientConfig:
    """Load client settings from THREADLINE_* environment variables."""
    return ClientConfig.from_env()


def get_backend(config: ClientConfig | None = None) -> SessionBackend:
    """Create the HTTP session backend.

    Args:
        config: Settings to use (defaults to the environment)

    Returns:
        HTTP session backend instance
    """
    cfg = config or get_config()
    return create_session_backend(
        "http",
        base_url=cfg.base_url,
        timeout=cfg.timeout,
        api_token=cfg.api_token,
    )


def configure_logging(level: str, console: Console | None = None) -> None:
    """Route library logs through Rich at the given level."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console or Console(stderr=True), rich_tracebacks=False)],
        force=True,
    )
