"""Chat domain models shared by the streaming pipeline and its stores."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class NodeKind(StrEnum):
    """Addressable content nodes that can host a chat thread.

    Page kinds address the project itself; bucket kinds address one bucket row
    that carries the project foreign key.
    """

    GOAL_PAGE = "goal_page"
    GOAL_BUCKET = "goal_bucket"
    LAB_PAGE = "lab_page"
    LAB_BUCKET = "lab_bucket"
    DELIVERABLE_PAGE = "deliverable_page"
    DELIVERABLE_BUCKET = "deliverable_bucket"

    @classmethod
    def parse(cls, value: str) -> "NodeKind | None":
        """Return the kind for a wire tag, or None for an unknown tag."""
        try:
            return cls(value)
        except ValueError:
            return None


class TurnRole(StrEnum):
    """Speaker of a persisted turn."""

    USER = "user"
    ASSISTANT = "assistant"


class PromptRole(StrEnum):
    """Role of a message handed to a chat backend."""

    DIRECTIVE = "directive"  # Administrator instruction for a node kind
    USER = "user"
    ASSISTANT = "assistant"


class PromptMessage(BaseModel):
    """One entry of the context sent to a chat backend."""

    role: PromptRole
    content: str


class Turn(BaseModel):
    """A persisted chat message as seen by the core."""

    id: str
    parent_id: str
    parent_type: str
    role: str
    content: str
    timestamp: str = Field(default="", description="Display time (HH:MM)")
    has_saveable_content: bool = Field(default=False, description="Can be extracted into a bucket")
    saved: bool = Field(default=False, description="Already extracted into a bucket")
    sort_order: int = Field(default=0, description="Per-parent ordering key")

    model_config = {"from_attributes": True}


class Directive(BaseModel):
    """Administrator-controlled context for one node kind."""

    location_key: str
    context_query: str
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
