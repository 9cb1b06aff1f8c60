"""FastAPI dependencies for the chat stores and process-wide chat state.

Route tests swap any of these through `app.dependency_overrides`.
"""

from fastapi import Request

from bucketwise.chat.providers.base import ChatProvider
from bucketwise.chat.repositories import (
    BucketItemStore,
    ConversationStore,
    DirectiveStore,
    TenantLookup,
)
from bucketwise.chat.session import ChatMetrics, DetachedWorkers
from bucketwise.db.repositories import (
    BucketItemManager,
    ChatMessageStore,
    CoreQueryStore,
    ProjectTenantLookup,
)


def get_chat_provider(request: Request) -> ChatProvider:
    """The backend built once at startup by the app lifespan."""
    return request.app.state.chat_provider


def get_chat_metrics(request: Request) -> ChatMetrics:
    return request.app.state.chat_metrics


def get_chat_workers(request: Request) -> DetachedWorkers:
    return request.app.state.chat_workers


def get_tenant_lookup() -> TenantLookup:
    return ProjectTenantLookup.default()


def get_directive_store() -> DirectiveStore:
    return CoreQueryStore.default()


def get_conversation_store() -> ConversationStore:
    return ChatMessageStore.default()


def get_bucket_item_store() -> BucketItemStore:
    return BucketItemManager.default()
