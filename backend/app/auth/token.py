"""
JWT Token Verification

Tokens are issued by the auth service and signed with a shared HMAC secret
(JWT_SECRET, HS256 by default). This API only verifies them.

Claims read here:
  user_id  - UUID of the row in users
  role     - "student" | "admin"
  exp      - expiry (verified by python-jose)

A missing header, a malformed header, a bad signature and an expired token
all answer 401 in the standard error envelope (see app.main).
"""

from __future__ import annotations

import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ValidationError

from app.core.config import settings
from app.models.users import ROLE_ADMIN, ROLE_STUDENT

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# HTTP Bearer extractor — auto_error=False so we control the 401 body
# ---------------------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Verified token payload
# ---------------------------------------------------------------------------

class TokenPayload(BaseModel):
    """Parsed, validated JWT claims — passed to route handlers."""
    user_id: UUID
    role:    str          # student | admin
    exp:     int

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ---------------------------------------------------------------------------
# Main verification function
# ---------------------------------------------------------------------------

def verify_token(token: str) -> TokenPayload:
    """
    Verify a JWT token:
      1. Verify signature and expiry with the shared secret.
      2. Validate the user_id / role claims.
      3. Return a typed TokenPayload.
    """
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": True, "require_exp": True},
        )
    except ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except JWTError as exc:
        logger.debug("Token rejected: %s", exc)
        raise _unauthorized("Invalid or expired token")

    role = claims.get("role")
    if role not in (ROLE_STUDENT, ROLE_ADMIN):
        logger.warning("Unknown role '%s' in token, defaulting to '%s'", role, ROLE_STUDENT)
        claims["role"] = ROLE_STUDENT

    try:
        return TokenPayload(
            user_id=claims.get("user_id"),
            role=claims["role"],
            exp=claims["exp"],
        )
    except ValidationError:
        raise _unauthorized("Invalid token claims")


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------

async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> TokenPayload:
    """
    FastAPI dependency that extracts and validates the Bearer token.
    Inject into any route that requires authentication:

        @router.get("/semesters")
        async def list_semesters(user: CurrentUser): ...
    """
    if credentials is None:
        raise _unauthorized("Authorization header required")
    return verify_token(credentials.credentials)
