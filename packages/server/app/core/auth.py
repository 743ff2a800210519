"""
Authentication for Channel Hub.

Callers present a JWT bearer token whose ``sub`` claim is their identity
(a DID). Issuing the token (nonce challenge-response against the identity's
public key) happens elsewhere; this module only signs tokens for local use
and verifies them on every request.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import APIKeyHeader

from app.core.config import get_settings

log = structlog.get_logger()
settings = get_settings()

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    identity_id: str,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT for an identity. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": identity_id,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

class AuthenticatedIdentity:
    """The identity a request acts on behalf of."""

    def __init__(self, identity_id: str, claims: dict):
        self.identity_id = identity_id
        self.claims = claims

    def __repr__(self) -> str:
        return f"AuthenticatedIdentity({self.identity_id!r})"


async def get_authenticated_identity(
    request: Request,
    authorization: Optional[str] = Depends(api_key_header),
) -> AuthenticatedIdentity:
    """Main authentication dependency: verifies the bearer JWT."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Authentication required")

    token = authorization[7:].strip()
    try:
        payload = decode_jwt(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    identity_id = payload.get("sub")
    if not identity_id:
        raise HTTPException(status_code=401, detail="Token carries no identity")

    auth = AuthenticatedIdentity(identity_id=identity_id, claims=payload)
    request.state.auth = auth
    structlog.contextvars.bind_contextvars(identity_id=identity_id)
    return auth
