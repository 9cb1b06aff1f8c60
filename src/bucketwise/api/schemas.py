"""Pydantic schemas for API request/response models.

Request bodies use the camelCase keys the web client sends; responses keep
the snake_case field names of the stored rows.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Chat Schemas
# =============================================================================


class ChatRequest(BaseModel):
    """Body of POST /api/chat."""

    model_config = ConfigDict(populate_by_name=True)

    parent_id: str = Field(..., alias="parentId", description="Id of the page or bucket")
    parent_type: str = Field(..., alias="parentType", description="Node kind tag")
    content: str = Field(..., description="User message")

    @field_validator("parent_id", "parent_type", "content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value


class TurnResponse(BaseModel):
    """A persisted chat message."""

    id: str
    parent_id: str
    parent_type: str
    role: str
    content: str
    timestamp: str
    has_saveable_content: bool
    saved: bool
    sort_order: int

    model_config = {"from_attributes": True}


class TurnListResponse(BaseModel):
    """Ordered turns of one thread."""

    messages: list[TurnResponse]
    total: int


class TurnUpdate(BaseModel):
    """Body of PATCH /api/messages/{id}."""

    saved: bool


class ExtractResponse(BaseModel):
    """Result of copying a reply into a bucket."""

    message: TurnResponse
    item_id: str


# =============================================================================
# Core Query Schemas
# =============================================================================


class CoreQueryResponse(BaseModel):
    """Directive attached to one node kind."""

    location_key: str
    context_query: str
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class CoreQueryUpdate(BaseModel):
    """Body of PUT /api/admin/core-queries/{location_key}."""

    context_query: str = Field(
        ..., max_length=20000, description="Directive text; blank disables it"
    )


# =============================================================================
# Health Schemas
# =============================================================================


class HealthResponse(BaseModel):
    """Server health status."""

    status: Literal["healthy", "unhealthy"]
    version: str
    provider: str
    model: str
    database_connected: bool
    chat: dict[str, int]
    errors: list[str]
