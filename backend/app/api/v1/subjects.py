"""
Subjects API Router

  GET    /subjects?semester_id=           with is_favorite for the caller
  GET    /subjects/{subject_id}           with semester and teachers
  POST   /subjects/{subject_id}/favorite  toggle favorite
  POST   /admin/subjects                  admin
  PUT    /admin/subjects/{subject_id}     admin, teacher list replaced atomically
  DELETE /admin/subjects/{subject_id}     admin, releases every document first
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy import select

from app.auth.dependencies import DB, AdminUser, CurrentUser, Publisher, Storage
from app.models.catalog import Subject
from app.schemas.catalog import SubjectCreate, SubjectDetail, SubjectOut, SubjectUpdate
from app.schemas.common import ErrorResponse, envelope
from app.schemas.favorites import FavoriteToggleOut
from app.services.favorites import FavoritesService
from app.services.subjects import SubjectService

router = APIRouter(tags=["Subjects"])

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get("/subjects", summary="List subjects", responses=_ERRORS)
async def list_subjects(
    db:          DB,
    user:        CurrentUser,
    semester_id: Optional[UUID] = Query(None),
) -> JSONResponse:
    stmt = select(Subject).order_by(Subject.name_cs)
    if semester_id is not None:
        stmt = stmt.where(Subject.semester_id == semester_id)
    subjects = (await db.execute(stmt)).scalars().all()

    favorites = await FavoritesService(db).favorite_subject_ids(user.user_id)
    items = []
    for subject in subjects:
        item = SubjectOut.model_validate(subject)
        item.is_favorite = subject.id in favorites
        items.append(item)
    return envelope(items)


@router.get("/subjects/{subject_id}", summary="Subject detail", responses=_ERRORS)
async def get_subject(
    subject_id: UUID,
    db:         DB,
    user:       CurrentUser,
    publisher:  Publisher,
) -> JSONResponse:
    subject = await SubjectService(db, publisher).get(subject_id)
    detail = SubjectDetail.model_validate(subject)
    detail.is_favorite = subject.id in await FavoritesService(db).favorite_subject_ids(user.user_id)
    return envelope(detail)


@router.post(
    "/subjects/{subject_id}/favorite",
    summary="Toggle the subject in the caller's favorites",
    responses=_ERRORS,
)
async def toggle_subject_favorite(subject_id: UUID, db: DB, user: CurrentUser) -> JSONResponse:
    is_favorite = await FavoritesService(db).toggle_subject(user.user_id, subject_id)
    return envelope(FavoriteToggleOut(is_favorite=is_favorite))


@router.post(
    "/admin/subjects",
    status_code=status.HTTP_201_CREATED,
    summary="Create a subject with its teachers",
    responses=_ERRORS,
)
async def create_subject(
    body:      SubjectCreate,
    db:        DB,
    admin:     AdminUser,
    publisher: Publisher,
) -> JSONResponse:
    subject = await SubjectService(db, publisher).create(body, created_by=admin.user_id)
    return envelope(SubjectDetail.model_validate(subject), status_code=status.HTTP_201_CREATED)


@router.put("/admin/subjects/{subject_id}", summary="Update a subject", responses=_ERRORS)
async def update_subject(
    subject_id: UUID,
    body:       SubjectUpdate,
    db:         DB,
    admin:      AdminUser,
    publisher:  Publisher,
) -> JSONResponse:
    subject = await SubjectService(db, publisher).update(subject_id, body)
    return envelope(SubjectDetail.model_validate(subject))


@router.delete("/admin/subjects/{subject_id}", summary="Delete a subject", responses=_ERRORS)
async def delete_subject(
    subject_id: UUID,
    db:         DB,
    admin:      AdminUser,
    storage:    Storage,
    publisher:  Publisher,
) -> JSONResponse:
    released = await SubjectService(db, publisher).delete(subject_id, storage=storage, user=admin)
    return envelope({"deleted_documents": released})
