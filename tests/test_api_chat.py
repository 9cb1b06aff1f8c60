"""Tests for POST /api/chat.

The app runs over httpx.ASGITransport with its stores, backend and caller
replaced by in-memory fakes.
"""

import asyncio
from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from bucketwise.chat.frames import DoneFrame, ErrorFrame, FrameDecoder, TokenFrame
from bucketwise.chat.session import SessionState
from tests.harness import ChatWorld, ScriptedProvider


@pytest.fixture
def world() -> ChatWorld:
    world = ChatWorld.with_project("T1", owner="u1")
    world.add_project("T2", owner="u2")
    world.tenants.lab_buckets.update({"B1": "T1", "B2": "T2"})
    return world


@pytest_asyncio.fixture
async def client(world: ChatWorld) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=world.app(user_id="u1"))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def _decode(body: bytes) -> list[TokenFrame | DoneFrame | ErrorFrame]:
    decoder = FrameDecoder()
    return decoder.feed(body) + decoder.close()


class TestChatEndpoint:
    """Tests for the streaming chat endpoint."""

    @pytest.mark.asyncio
    async def test_streams_event_stream(self, client: httpx.AsyncClient, world: ChatWorld) -> None:
        response = await client.post(
            "/api/chat", json={"parentId": "B1", "parentType": "lab_bucket", "content": "hello"}
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-accel-buffering"] == "no"

        frames = _decode(response.content)
        assert frames[:-1] == [TokenFrame(text="Hello"), TokenFrame(text=" world")]
        assert isinstance(frames[-1], DoneFrame)
        assert len(world.conversations.thread("B1", "lab_bucket")) == 2

    @pytest.mark.asyncio
    async def test_foreign_node_forbidden(self, client: httpx.AsyncClient, world: ChatWorld) -> None:
        response = await client.post(
            "/api/chat", json={"parentId": "B2", "parentType": "lab_bucket", "content": "hello"}
        )

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "node_access_denied"
        assert world.conversations.turns == {}

    @pytest.mark.asyncio
    async def test_bogus_kind_forbidden(self, client: httpx.AsyncClient, world: ChatWorld) -> None:
        response = await client.post(
            "/api/chat", json={"parentId": "B1", "parentType": "bogus", "content": "hello"}
        )

        assert response.status_code == 403
        assert world.conversations.turns == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"parentId": "B1", "parentType": "lab_bucket"},
            {"parentId": "B1", "parentType": "lab_bucket", "content": "   "},
            {"parentId": "", "parentType": "lab_bucket", "content": "hello"},
            {"parentType": "lab_bucket", "content": "hello"},
        ],
    )
    async def test_invalid_body_rejected(
        self, client: httpx.AsyncClient, world: ChatWorld, body: dict[str, str]
    ) -> None:
        response = await client.post("/api/chat", json=body)

        assert response.status_code == 422
        assert world.conversations.turns == {}

    @pytest.mark.asyncio
    async def test_backend_error_ends_with_error_frame(
        self, client: httpx.AsyncClient, world: ChatWorld
    ) -> None:
        world.provider = ScriptedProvider(fragments=("Hel", "lo"), error="quota exceeded")
        response = await client.post(
            "/api/chat", json={"parentId": "T1", "parentType": "goal_page", "content": "hi"}
        )

        assert response.status_code == 200
        frames = _decode(response.content)
        assert frames[-1] == ErrorFrame(message="quota exceeded")
        assert sum(isinstance(f, DoneFrame | ErrorFrame) for f in frames) == 1
        reply = world.conversations.thread("T1", "goal_page")[-1]
        assert reply.content == "Sorry, I encountered an error: quota exceeded"

    @pytest.mark.asyncio
    async def test_directive_reaches_backend(self, client: httpx.AsyncClient, world: ChatWorld) -> None:
        world.directives.directives["goal_page"] = "Answer in French"
        await client.post(
            "/api/chat", json={"parentId": "T1", "parentType": "goal_page", "content": "hi"}
        )

        context = world.provider.calls[0]
        assert context[0].content == "Answer in French"
        assert context[0].role == "directive"


class TestCliClientStreaming:
    """The CLI client decodes the same stream."""

    @pytest.mark.asyncio
    async def test_stream_chat(self, world: ChatWorld) -> None:
        from bucketwise.chat.frames import StreamingTurn
        from bucketwise.cli.client import BucketwiseClient

        transport = httpx.ASGITransport(app=world.app(user_id="u1"))
        turn = StreamingTurn()
        async with BucketwiseClient(
            base_url="http://test/api", transport=transport, auth_token="unused"
        ) as api:
            async for frame in api.stream_chat("lab_bucket", "B1", "hello"):
                turn.apply(frame)

        assert turn.finished
        assert turn.content == "Hello world"
        assert turn.ai_message_id == world.conversations.thread("B1", "lab_bucket")[-1].id

    @pytest.mark.asyncio
    async def test_stream_chat_forbidden(self, world: ChatWorld) -> None:
        from bucketwise.cli.client import BucketwiseClient, BucketwiseClientError

        transport = httpx.ASGITransport(app=world.app(user_id="u1"))
        async with BucketwiseClient(base_url="http://test/api", transport=transport) as api:
            with pytest.raises(BucketwiseClientError) as exc_info:
                async for _ in api.stream_chat("lab_bucket", "B2", "hello"):
                    pass

        assert exc_info.value.status_code == 403


class TestLifespan:
    """The backend is built at startup and released at shutdown."""

    @pytest.mark.asyncio
    async def test_unknown_provider_blocks_startup(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from bucketwise.api.app import create_api_app, lifespan
        from bucketwise.config import settings
        from bucketwise.errors import ProviderConfigurationError

        monkeypatch.setattr(settings, "ai_provider", "bogus")
        with pytest.raises(ProviderConfigurationError):
            async with lifespan(create_api_app()):
                pass

    @pytest.mark.asyncio
    async def test_provider_owned_by_app_state(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from unittest.mock import AsyncMock

        from bucketwise.api import app as app_module

        provider = ScriptedProvider()
        close_db = AsyncMock()
        monkeypatch.setattr(app_module, "create_provider", lambda _settings: provider)
        monkeypatch.setattr(app_module, "init_db", AsyncMock())
        monkeypatch.setattr(app_module, "close_db", close_db)

        app = app_module.create_api_app()
        async with app_module.lifespan(app):
            assert app.state.chat_provider is provider
            assert not provider.closed

        assert provider.closed
        close_db.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_detached_reply(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A reply still streaming to a disconnected client is written before shutdown."""
        from unittest.mock import AsyncMock

        from bucketwise.api import app as app_module

        world = ChatWorld.with_project("T1", owner="u1")
        gate = asyncio.Event()
        world.provider = ScriptedProvider(fragments=("partial", " and the rest"), gate=gate)
        close_db = AsyncMock()
        monkeypatch.setattr(app_module, "create_provider", lambda _settings: world.provider)
        monkeypatch.setattr(app_module, "init_db", AsyncMock())
        monkeypatch.setattr(app_module, "close_db", close_db)

        app = app_module.create_api_app()
        world.workers = app.state.chat_workers
        async with app_module.lifespan(app):
            session = world.session(user_id="u1")
            await session.prepare("T1", "goal_page", "hi")
            body = session.frames()
            await anext(body)
            await body.aclose()
            asyncio.get_running_loop().call_later(0.01, gate.set)

        reply = world.conversations.thread("T1", "goal_page")[-1]
        assert reply.role == "assistant"
        assert reply.content == "partial and the rest"
        assert session.state is SessionState.CLOSED
        assert world.provider.closed
        close_db.assert_awaited_once()
