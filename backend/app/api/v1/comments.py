"""
Comments API Router

  POST   /subjects/{subject_id}/comments
  GET    /subjects/{subject_id}/comments    newest first, anonymous authors masked
  DELETE /comments/{comment_id}             author or admin
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.auth.dependencies import DB, CurrentUser
from app.auth.rbac import can_modify
from app.models.catalog import Subject
from app.models.community import Comment
from app.schemas.common import ErrorResponse, envelope
from app.schemas.community import CommentCreate, CommentOut, CommunityErrors
from app.schemas.documents import DocumentErrors

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Comments"])

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.post(
    "/subjects/{subject_id}/comments",
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a subject",
    responses=_ERRORS,
)
async def create_comment(
    subject_id: UUID,
    body:       CommentCreate,
    db:         DB,
    user:       CurrentUser,
) -> JSONResponse:
    if await db.get(Subject, subject_id) is None:
        raise DocumentErrors.subject_not_found()
    if not body.content.strip():
        raise CommunityErrors.empty_content()

    comment = Comment(
        subject_id=subject_id,
        user_id=user.user_id,
        content=body.content.strip(),
        is_anonymous=body.is_anonymous,
    )
    db.add(comment)
    await db.commit()

    result = await db.execute(
        select(Comment)
        .where(Comment.id == comment.id)
        .options(selectinload(Comment.user))
        .execution_options(populate_existing=True)
    )
    return envelope(CommentOut.of(result.scalars().one()), status_code=status.HTTP_201_CREATED)


@router.get("/subjects/{subject_id}/comments", summary="Comments of a subject", responses=_ERRORS)
async def list_comments(subject_id: UUID, db: DB, user: CurrentUser) -> JSONResponse:
    result = await db.execute(
        select(Comment)
        .where(Comment.subject_id == subject_id)
        .options(selectinload(Comment.user))
        .order_by(Comment.created_at.desc())
    )
    return envelope([CommentOut.of(c) for c in result.scalars().all()])


@router.delete("/comments/{comment_id}", summary="Delete a comment", responses=_ERRORS)
async def delete_comment(comment_id: UUID, db: DB, user: CurrentUser) -> JSONResponse:
    comment = await db.get(Comment, comment_id)
    if comment is None:
        raise CommunityErrors.comment_not_found()
    if not can_modify(user, comment.user_id):
        raise CommunityErrors.not_author()

    await db.delete(comment)
    await db.commit()
    logger.info("Comment deleted | id=%s user=%s", comment_id, user.user_id)
    return envelope()
