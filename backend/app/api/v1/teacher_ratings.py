"""
Teacher Ratings API Router

  POST   /teachers/{teacher_id}/rating     1–5; 201 when new, 200 when changed
  DELETE /teachers/{teacher_id}/rating     the caller's own rating
  GET    /teachers/{teacher_id}/ratings    aggregate + caller's rating
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, select

from app.auth.dependencies import DB, CurrentUser
from app.models.catalog import SubjectTeacher
from app.models.community import TeacherRating
from app.schemas.common import ErrorResponse, envelope
from app.schemas.community import CommunityErrors, RatingOut, RatingRequest, RatingSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/teachers", tags=["Teacher Ratings"])

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


async def _ensure_teacher(db, teacher_id: UUID) -> None:
    if await db.get(SubjectTeacher, teacher_id) is None:
        raise CommunityErrors.teacher_not_found()


async def _own_rating(db, teacher_id: UUID, user_id: UUID) -> TeacherRating | None:
    result = await db.execute(
        select(TeacherRating).where(
            TeacherRating.teacher_id == teacher_id,
            TeacherRating.user_id == user_id,
        )
    )
    return result.scalars().first()


@router.post("/{teacher_id}/rating", summary="Rate a teacher", responses=_ERRORS)
async def rate_teacher(
    teacher_id: UUID,
    body:       RatingRequest,
    db:         DB,
    user:       CurrentUser,
) -> JSONResponse:
    await _ensure_teacher(db, teacher_id)

    rating = await _own_rating(db, teacher_id, user.user_id)
    if rating is None:
        rating = TeacherRating(teacher_id=teacher_id, user_id=user.user_id, rating=body.rating)
        db.add(rating)
        status_code = status.HTTP_201_CREATED
    else:
        rating.rating = body.rating
        status_code = status.HTTP_200_OK
    await db.commit()

    logger.info("Teacher rated | teacher=%s user=%s rating=%d", teacher_id, user.user_id, body.rating)
    return envelope(RatingOut.model_validate(rating), status_code=status_code)


@router.delete("/{teacher_id}/rating", summary="Remove your rating", responses=_ERRORS)
async def delete_rating(teacher_id: UUID, db: DB, user: CurrentUser) -> JSONResponse:
    rating = await _own_rating(db, teacher_id, user.user_id)
    if rating is None:
        raise CommunityErrors.rating_not_found()

    await db.delete(rating)
    await db.commit()
    return envelope()


@router.get("/{teacher_id}/ratings", summary="Rating summary of a teacher", responses=_ERRORS)
async def get_ratings(teacher_id: UUID, db: DB, user: CurrentUser) -> JSONResponse:
    await _ensure_teacher(db, teacher_id)

    rows = await db.execute(
        select(TeacherRating.rating, func.count())
        .where(TeacherRating.teacher_id == teacher_id)
        .group_by(TeacherRating.rating)
    )
    distribution = {str(stars): 0 for stars in range(1, 6)}
    total = 0
    weighted = 0
    for stars, count in rows.all():
        distribution[str(stars)] = count
        total += count
        weighted += stars * count

    own = await _own_rating(db, teacher_id, user.user_id)
    summary = RatingSummary(
        teacher_id=teacher_id,
        average_rating=round(weighted / total, 2) if total else 0.0,
        total_ratings=total,
        user_rating=own.rating if own else None,
        rating_distribution=distribution,
    )
    return envelope(summary)
