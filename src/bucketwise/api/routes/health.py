"""Service health: database, chat backend and chat counters."""

from fastapi import APIRouter, Depends

from bucketwise import __version__
from bucketwise.api.dependencies import get_chat_metrics, get_chat_provider
from bucketwise.api.schemas import HealthResponse
from bucketwise.chat.providers.base import ChatProvider
from bucketwise.chat.session import ChatMetrics
from bucketwise.db.connection import check_postgres_health

router = APIRouter(tags=["health"])


async def get_database_health() -> dict[str, str | None]:
    return await check_postgres_health()


@router.get("/health", response_model=HealthResponse)
async def health(
    provider: ChatProvider = Depends(get_chat_provider),
    metrics: ChatMetrics = Depends(get_chat_metrics),
    database: dict[str, str | None] = Depends(get_database_health),
) -> HealthResponse:
    """Get server health status."""
    errors: list[str] = []
    connected = database.get("status") == "healthy"
    if not connected:
        errors.append(f"database: {database.get('error') or 'unavailable'}")

    return HealthResponse(
        status="healthy" if connected else "unhealthy",
        version=__version__,
        provider=str(provider.name),
        model=provider.model,
        database_connected=connected,
        chat=metrics.snapshot(),
        errors=errors,
    )
