"""
Role-Based Access Control (RBAC)

Role hierarchy (highest → lowest privilege):
    admin > student

Catalog mutations (semesters, subjects, categories) require admin.
Ownership rules ("uploader or admin", "author or admin") are checked in the
handlers and services that load the owned row, via can_modify().

Usage:
    @router.post("/admin/semesters")
    async def create_semester(user: AdminUser): ...
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status

from app.auth.token import TokenPayload, get_current_user

# ---------------------------------------------------------------------------
# Role ordering — higher index = more privilege
# ---------------------------------------------------------------------------

_ROLE_ORDER: dict[str, int] = {
    "student": 0,
    "admin":   1,
}


def _has_role(user_role: str, required_role: str) -> bool:
    """Return True if user_role meets or exceeds required_role."""
    user_level     = _ROLE_ORDER.get(user_role, -1)
    required_level = _ROLE_ORDER.get(required_role, 999)
    return user_level >= required_level


def can_modify(user: TokenPayload, owner_id: UUID) -> bool:
    """Owners may modify their own rows; admins may modify anything."""
    return user.user_id == owner_id or user.is_admin


# ---------------------------------------------------------------------------
# Dependency factory
# ---------------------------------------------------------------------------

def require_role(minimum_role: str):
    """
    Returns a FastAPI dependency that:
      1. Verifies the JWT (via get_current_user).
      2. Checks the user's role meets the minimum requirement.
      3. Passes the TokenPayload to the route handler.
    """
    async def _dependency(
        user: Annotated[TokenPayload, Depends(get_current_user)],
    ) -> TokenPayload:
        if not _has_role(user.role, minimum_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Admin access required" if minimum_role == "admin" else (
                    f"Insufficient permissions. Required: '{minimum_role}'."
                ),
            )
        return user

    return _dependency


require_admin = require_role("admin")
