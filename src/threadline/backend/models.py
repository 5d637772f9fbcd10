"""Data models for backend responses.

These models describe what the session backend returns. The backend owns
the persistence format; only the fields the branch manager reads are typed.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SessionSummary(BaseModel):
    """One entry in the session list."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    title: str = ""
    created_at: str | float | None = None
    updated_at: str | float | None = None
    workspace: str | None = None
    is_core: bool = Field(default=False, alias="isCore")
    last_updated: str | float | None = Field(default=None, alias="lastUpdated")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Accept numeric ids."""
        if isinstance(v, int | float) and not isinstance(v, bool):
            return str(v)
        return v

    def updated_timestamp(self) -> float:
        """Last update time in epoch milliseconds, 0 when unknown."""
        return _to_millis(self.updated_at) or _to_millis(self.last_updated)


def _to_millis(value: str | float | None) -> float:
    if value is None or value == "":
        return 0.0
    if isinstance(value, int | float):
        return float(value)
    try:
        return float(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp() * 1000
    except ValueError:
        return 0.0


class SessionPayload(BaseModel):
    """Response of the session-by-id endpoint."""

    model_config = ConfigDict(extra="ignore")

    messages: list[Any] = Field(default_factory=list, description="Raw message records")
    session: dict[str, Any] | None = None

    @field_validator("messages", mode="before")
    @classmethod
    def coerce_messages(cls, v: Any) -> Any:
        """Treat a missing or non-list message field as empty."""
        return v if isinstance(v, list) else []

    @field_validator("session", mode="before")
    @classmethod
    def coerce_session(cls, v: Any) -> Any:
        return v if isinstance(v, dict) else None


class JobStatus(BaseModel):
    """Response of the job-status endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    has_running_jobs: bool = Field(default=False, alias="hasRunningJobs")

    @field_validator("has_running_jobs", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        """Treat any truthy value as a running job, null as idle."""
        return bool(v)
