"""API route modules."""

from bucketwise.api.routes.chat import router as chat_router
from bucketwise.api.routes.core_queries import (
    admin_router as core_queries_admin_router,
    router as core_queries_router,
)
from bucketwise.api.routes.health import router as health_router
from bucketwise.api.routes.messages import router as messages_router

__all__ = [
    "chat_router",
    "core_queries_admin_router",
    "core_queries_router",
    "health_router",
    "messages_router",
]
