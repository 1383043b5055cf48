"""
Activity Feed API Router

  GET /activities?limit=    newest first; default 10, capped at 50
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from app.auth.dependencies import DB, CurrentUser
from app.schemas.activity import ActivityOut
from app.schemas.common import ErrorResponse, envelope
from app.services.activity import ActivityService

router = APIRouter(tags=["Activity"])


@router.get("/activities", summary="Recent uploads and deletions", responses={401: {"model": ErrorResponse}})
async def list_activities(
    db:    DB,
    user:  CurrentUser,
    limit: Optional[int] = Query(None, description="Default 10, maximum 50"),
) -> JSONResponse:
    activities = await ActivityService.recent(db, limit)
    return envelope([ActivityOut.of(a) for a in activities])
