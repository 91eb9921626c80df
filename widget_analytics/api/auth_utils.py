"""
Tenant session tokens.

The dashboard authenticates with an HS256 JWT whose subject is the tenant
id. Tokens carry a `scope` claim so a scheduler secret or a token minted
for another purpose is never mistaken for a tenant session.
"""

import os
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

SECRET_KEY = os.environ.get("WA_SECRET_KEY", "dev-secret-unsafe")
ALGORITHM = "HS256"
SESSION_SCOPE = "tenant"
SESSION_TTL = timedelta(hours=24)


def create_tenant_token(
    tenant_id: str,
    expires_delta: timedelta | None = None,
    now_utc: datetime | None = None,
) -> str:
    """
    Sign a session token for a tenant.

    Args:
        tenant_id: Becomes the `sub` claim.
        expires_delta: Lifetime; defaults to SESSION_TTL. Negative values
            produce an already expired token.
        now_utc: Issue time, for deterministic tests.
    """
    issued_at = now_utc if now_utc is not None else datetime.now(UTC)
    claims: dict[str, Any] = {
        "sub": tenant_id,
        "scope": SESSION_SCOPE,
        "iat": issued_at,
        "exp": issued_at + (expires_delta if expires_delta is not None else SESSION_TTL),
    }
    token: str = jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)
    return token


def tenant_id_from_token(token: str) -> str | None:
    """Tenant id of a valid, unexpired session token; None otherwise."""
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None

    if claims.get("scope") != SESSION_SCOPE:
        return None
    tenant_id = claims.get("sub")
    return tenant_id if isinstance(tenant_id, str) and tenant_id else None
