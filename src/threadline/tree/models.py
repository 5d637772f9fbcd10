"""Data models for the message tree.

These models define the in-memory shape of a branching conversation,
independent of how the backend persists it. Field names are snake_case; the
camelCase aliases match the backend's JSON.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Author of a message."""

    USER = "user"
    MODEL = "model"


class HydrationMode(str, Enum):
    """How parent links were reconstructed for one hydration batch."""

    EXPLICIT = "explicit"  # Records carried their own parent references
    INFERRED = "inferred"  # No parent references; chained in input order


class ImageAttachment(BaseModel):
    """Image attached to a user message."""

    model_config = ConfigDict(populate_by_name=True)

    data_url: str = Field(alias="dataUrl", description="Base64 data URL of the image")
    type: str = Field(default="", description="MIME type")
    name: str = Field(default="", description="Original file name")


class Message(BaseModel):
    """A single node in the conversation tree."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str = Field(default="", description="Unique id within a store; empty until appended")
    role: MessageRole = Field(default=MessageRole.USER)
    content: str = Field(default="")
    parent_id: str | None = Field(default=None, alias="parentId", description="None marks a root")
    stats: dict[str, Any] | None = Field(default=None, description="Token usage and timing")
    thought: str | None = Field(default=None, description="Model reasoning text")
    citations: list[str] | None = None
    images: list[ImageAttachment] | None = None
    session_id: str | None = Field(default=None, alias="sessionId")
    error: bool = False
    queued: bool = Field(default=False, description="Placeholder not yet accepted by the backend")
    temp_id: str | None = Field(
        default=None,
        alias="tempId",
        description="Correlates an optimistic placeholder with its confirmed id"
    )


class HydrationResult(BaseModel):
    """Output of rebuilding a tree from a flat message log."""

    messages: dict[str, Message] = Field(default_factory=dict)
    head_id: str | None = Field(default=None, description="Tip of the active branch after load")
    mode: HydrationMode = Field(default=HydrationMode.INFERRED)
    session: dict[str, Any] | None = Field(default=None, description="Session metadata from the backend")

    @property
    def workspace(self) -> str | None:
        """Workspace recorded on the session, if any."""
        if not self.session:
            return None
        workspace = self.session.get("workspace")
        return workspace if isinstance(workspace, str) and workspace else None
