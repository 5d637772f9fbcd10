"""Configuration constants and environment-driven client settings.

Centralizes magic numbers for the branch manager and the settings the CLI
reads from the environment.
"""

import os

from pydantic import BaseModel, Field

# Tree walking
MAX_ANCESTOR_DEPTH = 2000  # Hops before an ancestor walk is truncated

# Background reconciliation
DEFAULT_POLL_INTERVAL = 5.0  # Seconds between job-status polls while hidden

# Branch insights
MAX_BRANCH_JUMPS = 6  # Branch points surfaced for quick navigation

# Id prefixes
POSITIONAL_ID_PREFIX = "msg-"  # Fallback ids for records without one
QUEUED_ID_PREFIX = "queued-"  # Optimistic placeholders for queued input
TEMP_ID_PREFIX = "temp-"  # Locally appended messages without a server id


class ClientConfig(BaseModel):
    """Settings for talking to the session backend."""

    base_url: str = Field(default="http://localhost:3000", description="Backend root URL")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    poll_interval: float = Field(
        default=DEFAULT_POLL_INTERVAL,
        gt=0,
        description="Seconds between background job polls"
    )
    log_level: str = Field(default="WARNING", description="Root log level for the CLI")
    api_token: str | None = Field(default=None, description="Optional bearer token")

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Build settings from THREADLINE_* environment variables.

        Environment variables:
            THREADLINE_BASE_URL: Backend root URL (default: http://localhost:3000)
            THREADLINE_TIMEOUT: Request timeout in seconds (default: 30)
            THREADLINE_POLL_INTERVAL: Poll interval in seconds (default: 5)
            THREADLINE_LOG_LEVEL: Log level name (default: WARNING)
            THREADLINE_API_TOKEN: Bearer token (optional)
        """
        return cls(
            base_url=os.getenv("THREADLINE_BASE_URL", "http://localhost:3000"),
            timeout=float(os.getenv("THREADLINE_TIMEOUT", "30")),
            poll_interval=float(os.getenv("THREADLINE_POLL_INTERVAL", str(DEFAULT_POLL_INTERVAL))),
            log_level=os.getenv("THREADLINE_LOG_LEVEL", "WARNING").upper(),
            api_token=os.getenv("THREADLINE_API_TOKEN") or None,
        )
