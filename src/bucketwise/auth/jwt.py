"""Access-token verification.

Tokens are issued by the external identity provider (Supabase-style HS256
JWTs whose `sub` is the user id). This service only verifies them.
"""

from __future__ import annotations

from typing import Any

import jwt

from bucketwise import config as config_module


class JwtError(ValueError):
    """JWT validation error."""


def _require_secret() -> str:
    secret = config_module.settings.jwt_secret.get_secret_value()
    if not secret:
        raise JwtError("JWT secret is not configured (set BUCKETWISE_JWT_SECRET)")
    return secret


def verify_access_token(token: str) -> dict[str, Any]:
    """Verify token signature + expiry and return claims."""
    secret = _require_secret()
    audience = config_module.settings.jwt_audience
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[config_module.settings.jwt_algorithm],
            audience=audience,
            options={"require": ["sub", "exp"], "verify_aud": audience is not None},
        )
    except jwt.PyJWTError as e:
        raise JwtError(str(e)) from e

    if not str(claims.get("sub") or "").strip():
        raise JwtError("Token has an empty subject")

    return claims
