"""FastAPI auth dependencies."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bucketwise.auth.context import ANONYMOUS_USER_ID, Principal
from bucketwise.auth.errors import AdminRequiredError
from bucketwise.auth.http import extract_bearer_token
from bucketwise.auth.jwt import JwtError, verify_access_token
from bucketwise.config import settings
from bucketwise.db.connection import get_session_dependency
from bucketwise.db.models import Project, User


def resolve_claims(request: Request) -> dict | None:
    token = extract_bearer_token(request.headers.get("authorization"))
    if not token:
        return None
    try:
        return verify_access_token(token)
    except JwtError:
        return None


async def get_current_principal(
    request: Request,
    session: AsyncSession = Depends(get_session_dependency),
) -> Principal:
    """Resolve the caller and the set of projects it owns."""
    if settings.disable_auth:
        result = await session.execute(select(Project.id))
        return Principal(
            user_id=ANONYMOUS_USER_ID,
            tenant_ids=frozenset(str(pid) for pid in result.scalars().all()),
            is_admin=True,
        )

    claims = resolve_claims(request)
    if not claims:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    user_id = str(claims["sub"])
    result = await session.execute(select(Project.id).where(Project.user_id == user_id))
    tenant_ids = frozenset(str(pid) for pid in result.scalars().all())

    user = await session.get(User, user_id)
    return Principal(
        user_id=user_id,
        tenant_ids=tenant_ids,
        is_admin=bool(user is not None and user.is_admin),
    )


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise AdminRequiredError
    return principal
