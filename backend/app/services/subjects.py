"""
Subject Catalog Service

Admin-side lifecycle of a subject:

  create  → semester must exist, code must be unique, teachers inserted,
            one Unassigned category seeded per document type,
            subject pushed to the search index (background)
  update  → partial update; a supplied teacher list replaces the old one
            (delete-then-insert, committed together with the subject)
  delete  → every document released (object + index entry), then the row;
            teachers, categories, documents, Q&A, comments and favorites
            go with it by database cascade

Replacing the teacher list also drops the ratings of the removed teachers,
since ratings hang off the teacher rows.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.auth.token import TokenPayload
from app.core.errors import bad_request, conflict
from app.models.catalog import Semester, Subject, SubjectTeacher
from app.schemas.catalog import SubjectCreate, SubjectUpdate, TeacherIn
from app.schemas.documents import DocumentErrors
from app.services.categories import CategoryPolicy
from app.services.removal import RemovalService
from app.storage.s3 import S3StorageService
from app.workers.publisher import EventPublisher

logger = logging.getLogger(__name__)


def _invalid_semester():
    return bad_request("Semester does not exist", code="INVALID_SEMESTER")


def _duplicate_code(code: str):
    return conflict(f"Subject code '{code}' already exists", code="DUPLICATE_CODE")


class SubjectService:

    def __init__(self, db: AsyncSession, publisher: EventPublisher) -> None:
        self._db = db
        self._publisher = publisher

    async def get(self, subject_id: uuid.UUID) -> Subject:
        """Subject with semester and teachers loaded; 404 if missing."""
        result = await self._db.execute(
            select(Subject)
            .where(Subject.id == subject_id)
            .options(selectinload(Subject.semester), selectinload(Subject.teachers))
            .execution_options(populate_existing=True)
        )
        subject = result.scalars().first()
        if subject is None:
            raise DocumentErrors.subject_not_found()
        return subject

    async def _code_taken(self, code: str, exclude_id: uuid.UUID | None = None) -> bool:
        stmt = select(Subject.id).where(Subject.code == code)
        if exclude_id is not None:
            stmt = stmt.where(Subject.id != exclude_id)
        return (await self._db.execute(stmt.limit(1))).first() is not None

    def _add_teachers(self, subject_id: uuid.UUID, teachers: list[TeacherIn]) -> None:
        for teacher in teachers:
            self._db.add(
                SubjectTeacher(
                    subject_id=subject_id,
                    teacher_name=teacher.teacher_name,
                    topic_cs=teacher.topic_cs,
                )
            )

    async def create(self, payload: SubjectCreate, created_by: uuid.UUID) -> Subject:
        if await self._db.get(Semester, payload.semester_id) is None:
            raise _invalid_semester()
        if await self._code_taken(payload.code):
            raise _duplicate_code(payload.code)

        subject = Subject(
            id=uuid.uuid4(),
            semester_id=payload.semester_id,
            name_cs=payload.name_cs,
            name_en=payload.name_en,
            code=payload.code,
            description_cs=payload.description_cs,
            description_en=payload.description_en,
            credits=payload.credits,
        )
        self._db.add(subject)
        await self._db.flush()

        self._add_teachers(subject.id, payload.teachers)
        await CategoryPolicy(self._db).seed_subject(subject.id, created_by)

        try:
            await self._db.commit()
        except IntegrityError:
            await self._db.rollback()
            raise _duplicate_code(payload.code)

        logger.info(
            "Subject created | id=%s code=%s teachers=%d",
            subject.id, subject.code, len(payload.teachers),
        )
        subject = await self.get(subject.id)
        self._publisher.subject_changed(subject)
        return subject

    async def update(self, subject_id: uuid.UUID, payload: SubjectUpdate) -> Subject:
        subject = await self._db.get(Subject, subject_id)
        if subject is None:
            raise DocumentErrors.subject_not_found()

        if payload.semester_id is not None and payload.semester_id != subject.semester_id:
            if await self._db.get(Semester, payload.semester_id) is None:
                raise _invalid_semester()
        if payload.code is not None and await self._code_taken(payload.code, exclude_id=subject.id):
            raise _duplicate_code(payload.code)

        for field in (
            "semester_id", "name_cs", "name_en", "code",
            "description_cs", "description_en", "credits",
        ):
            value = getattr(payload, field)
            if value is not None:
                setattr(subject, field, value)

        if payload.teachers is not None:
            await self._db.execute(
                delete(SubjectTeacher).where(SubjectTeacher.subject_id == subject.id)
            )
            self._add_teachers(subject.id, payload.teachers)

        code = subject.code
        try:
            await self._db.commit()
        except IntegrityError:
            await self._db.rollback()
            raise _duplicate_code(code)

        logger.info(
            "Subject updated | id=%s teachers_replaced=%s",
            subject.id, payload.teachers is not None,
        )
        subject = await self.get(subject.id)
        self._publisher.subject_changed(subject)
        return subject

    async def delete(
        self,
        subject_id: uuid.UUID,
        storage: S3StorageService,
        user: TokenPayload,
    ) -> int:
        """Delete a subject and everything it owns. Returns the released document count."""
        subject = await self._db.get(Subject, subject_id)
        if subject is None:
            raise DocumentErrors.subject_not_found()

        removal = RemovalService(db=self._db, storage=storage, publisher=self._publisher, user=user)
        released = await removal.release_subject_documents(subject.id)

        await self._db.delete(subject)
        await self._db.commit()

        logger.info("Subject deleted | id=%s code=%s documents=%d", subject.id, subject.code, released)
        self._publisher.subject_deleted(subject.id)
        return released
