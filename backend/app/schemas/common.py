"""
Shared response schemas: the success/error envelope and public user views.

Success:  {"success": true,  "data": <payload>}
Failure:  {"success": false, "error": {"code": "...", "message": "..."}}
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.models.community import ANONYMOUS_DISPLAY_NAME
from app.models.users import User


class ErrorBody(BaseModel):
    code:    str = Field(..., description="Machine-readable error code, e.g. NOT_FOUND")
    message: str = Field(..., description="Human-readable explanation")


class ErrorResponse(BaseModel):
    """Uniform error body returned on every 4xx/5xx response."""
    success: bool = False
    error:   ErrorBody


def envelope(data: Any = None, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Wrap a payload (pydantic models, lists, dicts) in the success envelope."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = jsonable_encoder(data)
    return JSONResponse(status_code=status_code, content=body)


# ---------------------------------------------------------------------------
# User views
# ---------------------------------------------------------------------------

class UserPublic(BaseModel):
    """Author info shown next to documents, questions, answers and comments."""
    model_config = ConfigDict(from_attributes=True)

    id:           UUID | None = None
    email:        str | None = None
    display_name: str | None = None
    role:         str | None = None

    @classmethod
    def of(cls, user: User | None, *, anonymous: bool = False) -> "UserPublic | None":
        if user is None:
            return None
        if anonymous:
            # id stays so clients can offer "delete" to the author
            return cls(id=user.id, display_name=ANONYMOUS_DISPLAY_NAME, role=user.role)
        return cls.model_validate(user)


class UserProfile(BaseModel):
    """The caller's own account (GET /auth/me)."""
    model_config = ConfigDict(from_attributes=True)

    id:             UUID
    email:          str
    display_name:   str | None
    role:           str
    language:       str
    email_verified: bool
