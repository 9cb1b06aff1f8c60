"""SQL implementations of the chat storage contracts.

Each method runs in its own session and commits before returning, so a turn
written by the streaming controller is durable even if the stream later dies.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Self

import structlog
from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bucketwise.db.connection import get_session
from bucketwise.db.models import (
    BucketItem,
    ChatMessage,
    ChatSequence,
    CoreQuery,
    Deliverable,
    GoalSection,
    LabBucket,
    Project,
    utcnow_naive,
)
from bucketwise.models.chat import Directive, NodeKind, Turn, TurnRole

log = structlog.get_logger()

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def display_time(moment: datetime | None = None) -> str:
    """Format a turn's display timestamp (HH:MM)."""
    return (moment or datetime.now()).strftime("%H:%M")  # noqa: DTZ005 - local display time


class _SessionScoped:
    def __init__(self, session_factory: SessionFactory = get_session) -> None:
        self._session_factory = session_factory

    @classmethod
    def default(cls) -> Self:
        return cls(get_session)


class ProjectTenantLookup(_SessionScoped):
    """Resolve buckets to their project through the owning table."""

    async def project_exists(self, project_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(select(Project.id).where(Project.id == project_id))
            return result.scalar_one_or_none() is not None

    async def goal_section_project(self, section_id: str) -> str | None:
        return await self._project_of(GoalSection, section_id)

    async def lab_bucket_project(self, bucket_id: str) -> str | None:
        return await self._project_of(LabBucket, bucket_id)

    async def deliverable_project(self, deliverable_id: str) -> str | None:
        return await self._project_of(Deliverable, deliverable_id)

    async def _project_of(
        self, model: type[GoalSection] | type[LabBucket] | type[Deliverable], row_id: str
    ) -> str | None:
        async with self._session_factory() as session:
            result = await session.execute(select(model.project_id).where(model.id == row_id))
            project_id = result.scalar_one_or_none()
            return str(project_id) if project_id is not None else None


class CoreQueryStore(_SessionScoped):
    """Directive CRUD backed by `core_queries`."""

    async def get(self, location_key: str) -> Directive | None:
        async with self._session_factory() as session:
            row = await session.get(CoreQuery, location_key)
            return Directive.model_validate(row) if row is not None else None

    async def list_all(self) -> list[Directive]:
        async with self._session_factory() as session:
            result = await session.execute(select(CoreQuery).order_by(CoreQuery.location_key))
            return [Directive.model_validate(row) for row in result.scalars().all()]

    async def upsert(self, location_key: str, text: str) -> Directive:
        async with self._session_factory() as session:
            row = await session.get(CoreQuery, location_key)
            if row is None:
                row = CoreQuery(location_key=location_key, context_query=text)
            else:
                row.context_query = text
                row.updated_at = utcnow_naive()
            session.add(row)
            await session.flush()
            directive = Directive.model_validate(row)
        log.info("core_query_upserted", location_key=location_key, length=len(text))
        return directive


class ChatMessageStore(_SessionScoped):
    """Chat turns backed by `chat_messages` and `chat_sequences`.

    Ordering keys come from a per-thread counter row that is incremented with
    INSERT .. ON CONFLICT DO UPDATE .. RETURNING in the same transaction as the
    message insert. The row lock serializes concurrent writers on one thread
    until commit, so keys are unique and monotonic per (parent_id, parent_type).
    """

    async def append(
        self,
        parent_id: str,
        parent_kind: NodeKind,
        role: TurnRole,
        content: str,
        *,
        extractable: bool,
    ) -> Turn:
        async with self._session_factory() as session:
            sort_order = await self._next_sort_order(session, parent_id, parent_kind.value)
            row = ChatMessage(
                parent_id=parent_id,
                parent_type=parent_kind.value,
                role=role.value,
                content=content,
                timestamp=display_time(),
                has_saveable_content=extractable,
                saved=False,
                sort_order=sort_order,
            )
            session.add(row)
            await session.flush()
            turn = Turn.model_validate(row)
        log.debug(
            "chat_turn_persisted",
            turn_id=turn.id,
            parent_id=parent_id,
            parent_type=parent_kind.value,
            role=role.value,
            sort_order=sort_order,
        )
        return turn

    async def list_ordered(self, parent_id: str, parent_kind: NodeKind) -> list[Turn]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatMessage)
                .where(
                    ChatMessage.parent_id == parent_id,
                    ChatMessage.parent_type == parent_kind.value,
                )
                .order_by(ChatMessage.sort_order)  # type: ignore[arg-type]
            )
            return [Turn.model_validate(row) for row in result.scalars().all()]

    async def get(self, turn_id: str) -> Turn | None:
        async with self._session_factory() as session:
            row = await session.get(ChatMessage, turn_id)
            return Turn.model_validate(row) if row is not None else None

    async def mark_saved(self, turn_id: str, *, saved: bool = True) -> Turn | None:
        async with self._session_factory() as session:
            row = await session.get(ChatMessage, turn_id)
            if row is None:
                return None
            row.saved = saved
            session.add(row)
            await session.flush()
            return Turn.model_validate(row)

    async def claim_unsaved(self, turn_id: str) -> Turn | None:
        async with self._session_factory() as session:
            result = await session.execute(
                update(ChatMessage)
                .where(
                    ChatMessage.id == turn_id,
                    ChatMessage.saved.is_(False),  # type: ignore[attr-defined]
                )
                .values(saved=True)
                .returning(ChatMessage)
            )
            row = result.scalar_one_or_none()
            return Turn.model_validate(row) if row is not None else None

    @staticmethod
    async def _next_sort_order(session: AsyncSession, parent_id: str, parent_type: str) -> int:
        stmt = (
            pg_insert(ChatSequence)
            .values(parent_id=parent_id, parent_type=parent_type, last_value=1)
            .on_conflict_do_update(
                index_elements=["parent_id", "parent_type"],
                set_={"last_value": ChatSequence.last_value + 1},
            )
            .returning(ChatSequence.last_value)
        )
        result = await session.execute(stmt)
        return int(result.scalar_one())


class BucketItemManager(_SessionScoped):
    """Pin content into a page or bucket."""

    async def add_note(self, parent_id: str, parent_type: str, *, title: str, preview: str) -> str:
        async with self._session_factory() as session:
            result = await session.execute(
                select(BucketItem.sort_order)
                .where(BucketItem.parent_id == parent_id, BucketItem.parent_type == parent_type)
                .order_by(BucketItem.sort_order.desc())  # type: ignore[attr-defined]
                .limit(1)
            )
            last = result.scalar_one_or_none()
            item = BucketItem(
                parent_id=parent_id,
                parent_type=parent_type,
                type="note",
                title=title,
                preview=preview,
                date=utcnow_naive().strftime("%b %d"),
                sort_order=(last + 1) if last is not None else 0,
            )
            session.add(item)
            await session.flush()
            return item.id
