"""Tests for bearer-token verification and principal resolution."""

from collections.abc import AsyncGenerator
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from pydantic import SecretStr

from bucketwise.auth.context import Principal
from bucketwise.auth.dependencies import get_current_principal
from bucketwise.auth.http import extract_bearer_token
from bucketwise.auth.jwt import JwtError, verify_access_token
from bucketwise.config import settings
from bucketwise.db.connection import get_session_dependency
from bucketwise.models.chat import NodeKind, TurnRole
from tests.harness import ChatWorld, make_token
from tests.harness.world import TEST_JWT_SECRET


@pytest.fixture
def jwt_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "jwt_secret", SecretStr(TEST_JWT_SECRET))
    monkeypatch.setattr(settings, "jwt_audience", None)
    monkeypatch.setattr(settings, "disable_auth", False)


def _fake_session(project_ids: list[str], user: object | None = None) -> MagicMock:
    result = MagicMock()
    result.scalars.return_value.all.return_value = project_ids
    session = MagicMock()
    session.execute = AsyncMock(return_value=result)
    session.get = AsyncMock(return_value=user)
    return session


class TestBearerToken:
    """Tests for extract_bearer_token."""

    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc", "abc"),
            ("bearer  abc ", "abc"),
            ("Basic abc", None),
            ("Bearer", None),
            (None, None),
        ],
    )
    def test_extract(self, header: str | None, expected: str | None) -> None:
        assert extract_bearer_token(header) == expected


class TestVerifyAccessToken:
    """Tests for verify_access_token."""

    def test_valid_token(self, jwt_settings: None) -> None:
        claims = verify_access_token(make_token("user-1"))
        assert claims["sub"] == "user-1"

    def test_wrong_secret(self, jwt_settings: None) -> None:
        with pytest.raises(JwtError):
            verify_access_token(make_token("user-1", secret="another-secret-entirely-32-bytes!"))

    def test_expired(self, jwt_settings: None) -> None:
        with pytest.raises(JwtError):
            verify_access_token(make_token("user-1", ttl=-60))

    def test_audience_enforced_when_configured(
        self, jwt_settings: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "jwt_audience", "authenticated")
        assert verify_access_token(make_token("u", aud="authenticated"))["sub"] == "u"
        with pytest.raises(JwtError):
            verify_access_token(make_token("u", aud="anon"))

    def test_missing_secret(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "jwt_secret", SecretStr(""))
        with pytest.raises(JwtError, match="not configured"):
            verify_access_token("whatever")


class TestPrincipal:
    """Tests for Principal."""

    def test_owns(self) -> None:
        principal = Principal(user_id="u", tenant_ids=frozenset({"T1"}))
        assert principal.owns("T1")
        assert not principal.owns("T2")
        assert not principal.owns(None)


class TestCurrentPrincipal:
    """get_current_principal over a real request."""

    @pytest.fixture
    def world(self) -> ChatWorld:
        return ChatWorld.with_project("T1", owner="user-1")

    async def _get(
        self, world: ChatWorld, session: MagicMock, headers: dict[str, str]
    ) -> httpx.Response:
        app = world.app()
        del app.dependency_overrides[get_current_principal]

        async def _session() -> AsyncGenerator[MagicMock]:
            yield session

        app.dependency_overrides[get_session_dependency] = _session
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            return await client.get("/api/messages/goal_page/T1", headers=headers)

    @pytest.mark.asyncio
    async def test_missing_token_unauthorized(self, world: ChatWorld, jwt_settings: None) -> None:
        response = await self._get(world, _fake_session(["T1"]), {})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token_unauthorized(self, world: ChatWorld, jwt_settings: None) -> None:
        response = await self._get(
            world, _fake_session(["T1"]), {"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_tenants_come_from_owned_projects(
        self, world: ChatWorld, jwt_settings: None
    ) -> None:
        await world.conversations.append(
            "T1", NodeKind.GOAL_PAGE, TurnRole.USER, "hi", extractable=False
        )
        token = make_token("user-1")

        allowed = await self._get(
            world, _fake_session(["T1"]), {"Authorization": f"Bearer {token}"}
        )
        denied = await self._get(world, _fake_session([]), {"Authorization": f"Bearer {token}"})

        assert allowed.status_code == 200
        assert allowed.json()["total"] == 1
        assert denied.status_code == 403

    @pytest.mark.asyncio
    async def test_disable_auth_grants_every_project(
        self, world: ChatWorld, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "disable_auth", True)
        response = await self._get(world, _fake_session(["T1"]), {})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_admin_flag_from_user_row(self, world: ChatWorld, jwt_settings: None) -> None:
        app = world.app()
        del app.dependency_overrides[get_current_principal]
        session = _fake_session([], user=SimpleNamespace(is_admin=True))

        async def _session() -> AsyncGenerator[MagicMock]:
            yield session

        app.dependency_overrides[get_session_dependency] = _session
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.put(
                "/api/admin/core-queries/lab_page",
                json={"context_query": "Be rigorous"},
                headers={"Authorization": f"Bearer {make_token('user-1')}"},
            )

        assert response.status_code == 200
        assert world.directives.directives == {"lab_page": "Be rigorous"}
