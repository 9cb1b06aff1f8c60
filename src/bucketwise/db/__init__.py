"""Bucketwise database module - PostgreSQL via SQLModel + asyncpg.

Usage:
    from bucketwise.db import ChatMessageStore
    from bucketwise.models import NodeKind

    store = ChatMessageStore.default()
    turns = await store.list_ordered(bucket_id, NodeKind.LAB_BUCKET)
"""

from bucketwise.db.connection import (
    async_session_factory,
    check_postgres_health,
    close_db,
    get_session,
    get_session_dependency,
    init_db,
)
from bucketwise.db.models import (
    BucketItem,
    ChatMessage,
    ChatSequence,
    CoreQuery,
    Deliverable,
    GoalSection,
    LabBucket,
    Project,
    User,
)
from bucketwise.db.repositories import (
    BucketItemManager,
    ChatMessageStore,
    CoreQueryStore,
    ProjectTenantLookup,
)

__all__ = [
    # Connection
    "init_db",
    "close_db",
    "get_session",
    "get_session_dependency",
    "async_session_factory",
    "check_postgres_health",
    # Models
    "BucketItem",
    "ChatMessage",
    "ChatSequence",
    "CoreQuery",
    "Deliverable",
    "GoalSection",
    "LabBucket",
    "Project",
    "User",
    # Repositories
    "BucketItemManager",
    "ChatMessageStore",
    "CoreQueryStore",
    "ProjectTenantLookup",
]
