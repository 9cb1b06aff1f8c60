"""Tests for resolving content nodes to their owning project."""

import pytest

from bucketwise.auth.context import Principal
from bucketwise.auth.errors import MessageAccessDeniedError, NodeAccessDeniedError
from bucketwise.chat.ownership import RESOLVERS, authorize_node, authorize_turn, resolve_tenant
from bucketwise.models.chat import NodeKind, Turn
from tests.harness import InMemoryTenantLookup


@pytest.fixture
def lookup() -> InMemoryTenantLookup:
    return InMemoryTenantLookup(
        projects={"T1", "T2"},
        goal_sections={"G1": "T1"},
        lab_buckets={"B1": "T1", "B2": "T2"},
        deliverables={"D1": "T2"},
    )


class TestResolveTenant:
    """Tests for resolve_tenant."""

    def test_every_kind_has_a_resolver(self) -> None:
        """The dispatch table covers the whole enum."""
        assert set(RESOLVERS) == set(NodeKind)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", ["goal_page", "lab_page", "deliverable_page"])
    async def test_page_kinds_resolve_to_themselves(
        self, lookup: InMemoryTenantLookup, kind: str
    ) -> None:
        assert await resolve_tenant(lookup, "T1", kind) == "T1"

    @pytest.mark.asyncio
    async def test_page_kind_unknown_project(self, lookup: InMemoryTenantLookup) -> None:
        assert await resolve_tenant(lookup, "missing", "goal_page") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("node_id", "kind", "expected"),
        [
            ("G1", "goal_bucket", "T1"),
            ("B1", "lab_bucket", "T1"),
            ("B2", "lab_bucket", "T2"),
            ("D1", "deliverable_bucket", "T2"),
        ],
    )
    async def test_bucket_kinds_follow_foreign_key(
        self, lookup: InMemoryTenantLookup, node_id: str, kind: str, expected: str
    ) -> None:
        assert await resolve_tenant(lookup, node_id, kind) == expected

    @pytest.mark.asyncio
    async def test_bucket_id_looked_up_in_its_own_table(self, lookup: InMemoryTenantLookup) -> None:
        """A lab bucket id is not found through the goal-section table."""
        assert await resolve_tenant(lookup, "B1", "goal_bucket") is None
        assert lookup.calls == [("goal_section", "B1")]

    @pytest.mark.asyncio
    async def test_unknown_kind_fails_closed(self, lookup: InMemoryTenantLookup) -> None:
        assert await resolve_tenant(lookup, "T1", "bogus") is None
        assert lookup.calls == []

    @pytest.mark.asyncio
    async def test_empty_id_fails_closed(self, lookup: InMemoryTenantLookup) -> None:
        assert await resolve_tenant(lookup, "", "lab_bucket") is None


class TestAuthorizeNode:
    """Tests for authorize_node."""

    @pytest.mark.asyncio
    async def test_owner_is_allowed(self, lookup: InMemoryTenantLookup) -> None:
        principal = Principal(user_id="u1", tenant_ids=frozenset({"T1"}))
        assert await authorize_node(lookup, principal, "B1", "lab_bucket") is NodeKind.LAB_BUCKET

    @pytest.mark.asyncio
    async def test_foreign_project_denied(self, lookup: InMemoryTenantLookup) -> None:
        principal = Principal(user_id="u1", tenant_ids=frozenset({"T1"}))
        with pytest.raises(NodeAccessDeniedError) as exc_info:
            await authorize_node(lookup, principal, "B2", "lab_bucket")
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail["error"] == "node_access_denied"

    @pytest.mark.asyncio
    async def test_unknown_and_foreign_look_the_same(self, lookup: InMemoryTenantLookup) -> None:
        """Callers cannot tell a missing node from someone else's node."""
        principal = Principal(user_id="u1", tenant_ids=frozenset({"T1"}))
        with pytest.raises(NodeAccessDeniedError) as missing:
            await authorize_node(lookup, principal, "nope", "lab_bucket")
        with pytest.raises(NodeAccessDeniedError) as foreign:
            await authorize_node(lookup, principal, "B2", "lab_bucket")
        assert missing.value.detail == foreign.value.detail

    @pytest.mark.asyncio
    async def test_principal_without_projects_denied(self, lookup: InMemoryTenantLookup) -> None:
        with pytest.raises(NodeAccessDeniedError):
            await authorize_node(lookup, Principal(user_id="u2"), "T1", "goal_page")


def _turn(parent_id: str, parent_type: str) -> Turn:
    return Turn(
        id="msg-1",
        parent_id=parent_id,
        parent_type=parent_type,
        role="assistant",
        content="reply",
        timestamp="10:00",
        has_saveable_content=True,
        saved=False,
        sort_order=2,
    )


class TestAuthorizeTurn:
    """Tests for authorize_turn."""

    @pytest.mark.asyncio
    async def test_owner_is_allowed(self, lookup: InMemoryTenantLookup) -> None:
        principal = Principal(user_id="u1", tenant_ids=frozenset({"T1"}))
        turn = _turn("B1", "lab_bucket")
        assert await authorize_turn(lookup, principal, "msg-1", turn) == turn

    @pytest.mark.asyncio
    async def test_missing_and_foreign_look_the_same(self, lookup: InMemoryTenantLookup) -> None:
        principal = Principal(user_id="u1", tenant_ids=frozenset({"T1"}))
        with pytest.raises(MessageAccessDeniedError) as missing:
            await authorize_turn(lookup, principal, "msg-404", None)
        with pytest.raises(MessageAccessDeniedError) as foreign:
            await authorize_turn(lookup, principal, "msg-1", _turn("B2", "lab_bucket"))
        assert missing.value.status_code == foreign.value.status_code == 403
        assert missing.value.detail == foreign.value.detail
