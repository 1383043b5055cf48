"""
Users API Router

  GET /auth/me    the caller's profile, resolved from the JWT user_id
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.auth.dependencies import DB, CurrentUser
from app.core.errors import not_found
from app.models.users import User
from app.schemas.common import ErrorResponse, UserProfile, envelope

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get(
    "/me",
    summary="Current user",
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def me(db: DB, user: CurrentUser) -> JSONResponse:
    account = await db.get(User, user.user_id)
    if account is None:
        raise not_found("User")
    return envelope(UserProfile.model_validate(account))
