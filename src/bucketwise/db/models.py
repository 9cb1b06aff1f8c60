"""SQLModel schemas for projects, buckets and their chat threads.

Architecture:
- Project: the tenant; every bucket and chat thread belongs to exactly one
- GoalSection / LabBucket / Deliverable: buckets carrying a project foreign key
- BucketItem: content pinned into a bucket (e.g. an extracted chat reply)
- ChatMessage: one turn of a thread addressed by (parent_id, parent_type)
- ChatSequence: per-thread counter backing ChatMessage.sort_order
- CoreQuery: administrator directive per node kind
- User: verified principal record (admin flag only)
"""

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import field_validator
from sqlalchemy import Column, ForeignKey, Index, String, Text
from sqlmodel import Field, SQLModel


def utcnow_naive() -> datetime:
    """Get current UTC time as naive datetime (for TIMESTAMP WITHOUT TIME ZONE)."""
    return datetime.now(UTC).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid4())


def _project_fk() -> Column:
    return Column(
        String(64),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


# =============================================================================
# Project - the tenant
# =============================================================================


class Project(SQLModel, table=True):
    """A workspace project; root of isolation for all content and chat."""

    __tablename__ = "projects"  # type: ignore[assignment]

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    user_id: str | None = Field(
        default=None, max_length=255, index=True, description="Owning principal (sub claim)"
    )
    name: str = Field(sa_type=Text)
    summary: str = Field(default="", sa_type=Text)
    executive_summary: str = Field(default="", sa_type=Text)
    created_at: datetime = Field(default_factory=utcnow_naive)

    def __repr__(self) -> str:
        return f"<Project {self.name} ({self.id})>"

    @field_validator("created_at", mode="before")
    @classmethod
    def strip_timezone(cls, v: datetime | None) -> datetime | None:
        """Ensure datetimes are naive (PostgreSQL TIMESTAMP WITHOUT TIME ZONE)."""
        if v is not None and v.tzinfo is not None:
            return v.replace(tzinfo=None)
        return v


# =============================================================================
# Buckets
# =============================================================================


class GoalSection(SQLModel, table=True):
    """A goal bucket on the Goals page."""

    __tablename__ = "goal_sections"  # type: ignore[assignment]

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    project_id: str = Field(sa_column=_project_fk())
    generic_name: str = Field(sa_type=Text)
    subtitle: str = Field(default="", sa_type=Text)
    completeness: int = Field(default=0, ge=0, le=100)
    content: str = Field(default="", sa_type=Text)
    sort_order: int = Field(default=0)


class LabBucket(SQLModel, table=True):
    """A knowledge bucket on the Lab page."""

    __tablename__ = "lab_buckets"  # type: ignore[assignment]

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    project_id: str = Field(sa_column=_project_fk())
    name: str = Field(sa_type=Text)
    sort_order: int = Field(default=0)


class Deliverable(SQLModel, table=True):
    """A deliverable bucket on the Deliverables page."""

    __tablename__ = "deliverables"  # type: ignore[assignment]

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    project_id: str = Field(sa_column=_project_fk())
    title: str = Field(sa_type=Text)
    subtitle: str = Field(default="", sa_type=Text)
    status: str = Field(default="draft", max_length=32)
    content: str = Field(default="", sa_type=Text)
    sort_order: int = Field(default=0)


class BucketItem(SQLModel, table=True):
    """An item pinned into a page or bucket."""

    __tablename__ = "bucket_items"  # type: ignore[assignment]
    __table_args__ = (Index("ix_bucket_items_parent", "parent_id", "parent_type"),)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    parent_id: str = Field(max_length=64)
    parent_type: str = Field(max_length=32)
    type: str = Field(max_length=32, description="note, link or file")
    title: str = Field(sa_type=Text)
    preview: str = Field(default="", sa_type=Text)
    date: str = Field(default="", max_length=32)
    sort_order: int = Field(default=0)


# =============================================================================
# Chat
# =============================================================================


class ChatMessage(SQLModel, table=True):
    """One persisted turn of a node's chat thread.

    sort_order is allocated from ChatSequence at insert time and never updated.
    """

    __tablename__ = "chat_messages"  # type: ignore[assignment]
    __table_args__ = (
        Index("ix_chat_messages_thread", "parent_id", "parent_type", "sort_order", unique=True),
    )

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    parent_id: str = Field(max_length=64)
    parent_type: str = Field(max_length=32)
    role: str = Field(max_length=16)
    content: str = Field(sa_type=Text)
    timestamp: str = Field(default="", max_length=16, description="Display time (HH:MM)")
    has_saveable_content: bool = Field(default=False)
    saved: bool = Field(default=False)
    sort_order: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow_naive)

    def __repr__(self) -> str:
        return f"<ChatMessage {self.id} [{self.parent_type}:{self.parent_id} #{self.sort_order}]>"


class ChatSequence(SQLModel, table=True):
    """Last allocated ordering key per chat thread."""

    __tablename__ = "chat_sequences"  # type: ignore[assignment]

    parent_id: str = Field(primary_key=True, max_length=64)
    parent_type: str = Field(primary_key=True, max_length=32)
    last_value: int = Field(default=0)


class CoreQuery(SQLModel, table=True):
    """Directive prepended to model context for one node kind."""

    __tablename__ = "core_queries"  # type: ignore[assignment]

    location_key: str = Field(primary_key=True, max_length=32)
    context_query: str = Field(default="", sa_type=Text)
    updated_at: datetime = Field(
        default_factory=utcnow_naive,
        sa_column_kwargs={"onupdate": utcnow_naive},
    )


class User(SQLModel, table=True):
    """A verified principal. Identity is owned by the external auth provider."""

    __tablename__ = "users"  # type: ignore[assignment]

    id: str = Field(primary_key=True, max_length=255, description="Token subject")
    email: str | None = Field(default=None, max_length=320)
    is_admin: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow_naive)
