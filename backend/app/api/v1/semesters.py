"""
Semesters API Router

  GET    /semesters                        ordered by order_index
  GET    /semesters/{semester_id}          with its subjects
  POST   /admin/semesters                  admin
  PUT    /admin/semesters/{semester_id}    admin
  DELETE /admin/semesters/{semester_id}    admin, refused while subjects exist
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from app.auth.dependencies import DB, AdminUser, CurrentUser
from app.core.errors import conflict, not_found
from app.models.catalog import Semester, Subject
from app.schemas.catalog import SemesterCreate, SemesterDetail, SemesterOut, SemesterUpdate
from app.schemas.common import ErrorResponse, envelope

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Semesters"])

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


async def _get_semester(db, semester_id: UUID) -> Semester:
    semester = await db.get(Semester, semester_id)
    if semester is None:
        raise not_found("Semester")
    return semester


@router.get("/semesters", summary="All semesters", responses=_ERRORS)
async def list_semesters(db: DB, user: CurrentUser) -> JSONResponse:
    result = await db.execute(select(Semester).order_by(Semester.order_index, Semester.name_cs))
    return envelope([SemesterOut.model_validate(s) for s in result.scalars().all()])


@router.get("/semesters/{semester_id}", summary="Semester with its subjects", responses=_ERRORS)
async def get_semester(semester_id: UUID, db: DB, user: CurrentUser) -> JSONResponse:
    result = await db.execute(
        select(Semester)
        .where(Semester.id == semester_id)
        .options(selectinload(Semester.subjects))
    )
    semester = result.scalars().first()
    if semester is None:
        raise not_found("Semester")
    return envelope(SemesterDetail.model_validate(semester, from_attributes=True))


@router.post(
    "/admin/semesters",
    status_code=status.HTTP_201_CREATED,
    summary="Create a semester",
    responses=_ERRORS,
)
async def create_semester(body: SemesterCreate, db: DB, admin: AdminUser) -> JSONResponse:
    semester = Semester(name_cs=body.name_cs, name_en=body.name_en, order_index=body.order_index)
    db.add(semester)
    await db.commit()
    logger.info("Semester created | id=%s name=%s", semester.id, semester.name_cs)
    return envelope(SemesterOut.model_validate(semester), status_code=status.HTTP_201_CREATED)


@router.put("/admin/semesters/{semester_id}", summary="Update a semester", responses=_ERRORS)
async def update_semester(
    semester_id: UUID,
    body:        SemesterUpdate,
    db:          DB,
    admin:       AdminUser,
) -> JSONResponse:
    semester = await _get_semester(db, semester_id)
    for field, value in body.model_dump(exclude_none=True).items():
        setattr(semester, field, value)
    await db.commit()
    return envelope(SemesterOut.model_validate(semester))


@router.delete("/admin/semesters/{semester_id}", summary="Delete an empty semester", responses=_ERRORS)
async def delete_semester(semester_id: UUID, db: DB, admin: AdminUser) -> JSONResponse:
    semester = await _get_semester(db, semester_id)

    subject_count = (
        await db.execute(select(func.count(Subject.id)).where(Subject.semester_id == semester.id))
    ).scalar_one()
    if subject_count:
        raise conflict(
            f"Semester still has {subject_count} subject(s)",
            code="HAS_SUBJECTS",
        )

    await db.delete(semester)
    await db.commit()
    logger.info("Semester deleted | id=%s", semester_id)
    return envelope()
