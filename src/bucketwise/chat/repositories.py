"""Storage contracts the chat pipeline depends on.

The pipeline never talks to the ORM directly; it is handed objects satisfying
these protocols. SQL implementations live in `bucketwise.db.repositories`.
"""

from __future__ import annotations

from typing import Protocol

from bucketwise.models.chat import Directive, NodeKind, Turn, TurnRole


class TenantLookup(Protocol):
    """Reads needed to resolve a content node to its project.

    Unknown ids return None/False; they never raise.
    """

    async def project_exists(self, project_id: str) -> bool: ...

    async def goal_section_project(self, section_id: str) -> str | None: ...

    async def lab_bucket_project(self, bucket_id: str) -> str | None: ...

    async def deliverable_project(self, deliverable_id: str) -> str | None: ...


class DirectiveStore(Protocol):
    """Per-node-kind directives."""

    async def get(self, location_key: str) -> Directive | None: ...

    async def list_all(self) -> list[Directive]: ...

    async def upsert(self, location_key: str, text: str) -> Directive: ...


class ConversationStore(Protocol):
    """Chat turns of a (parent_id, parent_kind) thread.

    `append` commits before returning and assigns the ordering key atomically.
    """

    async def append(
        self,
        parent_id: str,
        parent_kind: NodeKind,
        role: TurnRole,
        content: str,
        *,
        extractable: bool,
    ) -> Turn: ...

    async def list_ordered(self, parent_id: str, parent_kind: NodeKind) -> list[Turn]: ...

    async def get(self, turn_id: str) -> Turn | None: ...

    async def mark_saved(self, turn_id: str, *, saved: bool = True) -> Turn | None: ...

    async def claim_unsaved(self, turn_id: str) -> Turn | None:
        """Flip `saved` from false to true; None unless this call flipped it."""
        ...


class BucketItemStore(Protocol):
    """Items pinned into a page or bucket."""

    async def add_note(
        self, parent_id: str, parent_type: str, *, title: str, preview: str
    ) -> str: ...
