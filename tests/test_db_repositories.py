"""Tests for the SQL store implementations, using mocked sessions."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from bucketwise.db.models import ChatMessage, CoreQuery
from bucketwise.db.repositories import ChatMessageStore, CoreQueryStore, display_time
from bucketwise.models.chat import NodeKind, TurnRole


def _session_factory(session: MagicMock):
    @asynccontextmanager
    async def factory() -> AsyncGenerator[MagicMock]:
        yield session

    return factory


def _mock_session(scalar: object = None) -> MagicMock:
    result = MagicMock()
    result.scalar_one.return_value = scalar
    session = MagicMock()
    session.execute = AsyncMock(return_value=result)
    session.flush = AsyncMock()
    session.get = AsyncMock(return_value=None)
    return session


class TestChatMessageStore:
    """Tests for ChatMessageStore."""

    @pytest.mark.asyncio
    async def test_sort_order_uses_atomic_upsert(self) -> None:
        session = _mock_session(scalar=7)

        sort_order = await ChatMessageStore._next_sort_order(session, "P1", "goal_page")

        assert sort_order == 7
        statement = session.execute.await_args.args[0]
        sql = str(statement.compile(dialect=postgresql.dialect()))
        assert "INSERT INTO chat_sequences" in sql
        assert "ON CONFLICT (parent_id, parent_type) DO UPDATE" in sql
        assert "RETURNING chat_sequences.last_value" in sql

    @pytest.mark.asyncio
    async def test_append_writes_row_with_allocated_key(self) -> None:
        session = _mock_session(scalar=3)
        store = ChatMessageStore(_session_factory(session))

        turn = await store.append(
            "B1", NodeKind.LAB_BUCKET, TurnRole.ASSISTANT, "reply", extractable=True
        )

        row = session.add.call_args.args[0]
        assert isinstance(row, ChatMessage)
        assert row.sort_order == 3
        assert row.parent_type == "lab_bucket"
        assert turn.id == row.id
        assert turn.has_saveable_content is True
        assert turn.saved is False
        session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_mark_saved_unknown(self) -> None:
        store = ChatMessageStore(_session_factory(_mock_session()))
        assert await store.mark_saved("missing") is None

    @pytest.mark.asyncio
    async def test_claim_unsaved_is_conditional_update(self) -> None:
        session = _mock_session()
        session.execute.return_value.scalar_one_or_none.return_value = None
        store = ChatMessageStore(_session_factory(session))

        assert await store.claim_unsaved("msg-1") is None

        statement = session.execute.await_args.args[0]
        sql = str(statement.compile(dialect=postgresql.dialect()))
        assert "UPDATE chat_messages SET saved=" in sql
        assert "chat_messages.saved IS false" in sql
        assert "RETURNING" in sql


class TestCoreQueryStore:
    """Tests for CoreQueryStore."""

    @pytest.mark.asyncio
    async def test_upsert_creates(self) -> None:
        session = _mock_session()
        store = CoreQueryStore(_session_factory(session))

        directive = await store.upsert("goal_page", "Answer in French")

        row = session.add.call_args.args[0]
        assert isinstance(row, CoreQuery)
        assert directive.context_query == "Answer in French"

    @pytest.mark.asyncio
    async def test_upsert_updates_existing(self) -> None:
        existing = CoreQuery(location_key="goal_page", context_query="old")
        session = _mock_session()
        session.get = AsyncMock(return_value=existing)
        store = CoreQueryStore(_session_factory(session))

        await store.upsert("goal_page", "new")

        assert existing.context_query == "new"


def test_display_time_format() -> None:
    assert display_time(datetime(2024, 5, 1, 9, 7)) == "09:07"
