"""
Favorites — per-user bookmarks on subjects and documents.

toggle_*() is check-then-act: read the join row, then insert or delete it.
There is no lock. Two concurrent toggles by the same user may both see
"absent"; the second insert then hits the composite primary key and the
request fails with 500. The stored state is never duplicated.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import Table, delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.catalog import Subject
from app.models.documents import Document
from app.models.users import user_favorite_documents, user_favorite_subjects
from app.schemas.documents import DocumentErrors

logger = logging.getLogger(__name__)


class FavoritesService:

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def _toggle(
        self,
        table: Table,
        target_column: str,
        user_id: uuid.UUID,
        target_id: uuid.UUID,
    ) -> bool:
        target = table.c[target_column]
        match = (table.c.user_id == user_id) & (target == target_id)

        exists = (await self._db.execute(select(table.c.user_id).where(match))).first()
        if exists:
            await self._db.execute(delete(table).where(match))
            favorite = False
        else:
            await self._db.execute(insert(table).values(user_id=user_id, **{target_column: target_id}))
            favorite = True

        await self._db.commit()
        logger.info(
            "Favorite toggled | user=%s %s=%s is_favorite=%s",
            user_id, target_column, target_id, favorite,
        )
        return favorite

    async def toggle_subject(self, user_id: uuid.UUID, subject_id: uuid.UUID) -> bool:
        """Returns the new state: True if the subject is now a favorite."""
        if await self._db.get(Subject, subject_id) is None:
            raise DocumentErrors.subject_not_found()
        return await self._toggle(user_favorite_subjects, "subject_id", user_id, subject_id)

    async def toggle_document(self, user_id: uuid.UUID, document_id: uuid.UUID) -> bool:
        """Returns the new state: True if the document is now a favorite."""
        if await self._db.get(Document, document_id) is None:
            raise DocumentErrors.document_not_found()
        return await self._toggle(user_favorite_documents, "document_id", user_id, document_id)

    async def favorite_subject_ids(self, user_id: uuid.UUID) -> set[uuid.UUID]:
        result = await self._db.execute(
            select(user_favorite_subjects.c.subject_id).where(
                user_favorite_subjects.c.user_id == user_id
            )
        )
        return set(result.scalars().all())

    async def list_favorites(self, user_id: uuid.UUID) -> tuple[list[Subject], list[Document]]:
        """Favorite subjects (with semester) and documents (with uploader, subject), newest first."""
        subjects = await self._db.execute(
            select(Subject)
            .join(user_favorite_subjects, user_favorite_subjects.c.subject_id == Subject.id)
            .where(user_favorite_subjects.c.user_id == user_id)
            .options(selectinload(Subject.semester))
            .order_by(user_favorite_subjects.c.created_at.desc())
        )
        documents = await self._db.execute(
            select(Document)
            .join(user_favorite_documents, user_favorite_documents.c.document_id == Document.id)
            .where(user_favorite_documents.c.user_id == user_id)
            .options(selectinload(Document.uploader), selectinload(Document.subject))
            .order_by(user_favorite_documents.c.created_at.desc())
        )
        return list(subjects.scalars().all()), list(documents.scalars().all())
