"""
Document Removal Service

Orchestrates the delete pipeline:
  1. Load the document (404 if missing)
  2. Authorize: uploader or admin (403 otherwise)
  3. Delete the object from storage (failure logged, deletion continues)
  4. Hand the search-index delete and the "deleted" activity to the background
  5. Delete the row (500 if this fails)

Consequences worth knowing:
  - A failed object delete leaves an orphaned object in the bucket.
  - A failed row delete after step 3 leaves a row pointing at a missing
    object; downloads of it answer 404.
  - The search index may briefly lag the database either way.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import can_modify
from app.auth.token import TokenPayload
from app.models.documents import Document
from app.schemas.documents import DocumentErrors
from app.storage.s3 import S3StorageService
from app.workers.publisher import EventPublisher

logger = logging.getLogger(__name__)


class RemovalService:
    """One instance per request; dependencies injected like IngestionService."""

    def __init__(
        self,
        db:        AsyncSession,
        storage:   S3StorageService,
        publisher: EventPublisher,
        user:      TokenPayload,
    ) -> None:
        self._db        = db
        self._storage   = storage
        self._publisher = publisher
        self._user      = user

    async def remove(self, document_id: uuid.UUID) -> None:
        # ---- Step 1: Load ----------------------------------------------
        doc = await self._db.get(Document, document_id)
        if doc is None:
            raise DocumentErrors.document_not_found()

        # ---- Step 2: Authorize -----------------------------------------
        if not can_modify(self._user, doc.uploaded_by):
            logger.warning(
                "Delete refused | doc=%s user=%s uploader=%s",
                document_id, self._user.user_id, doc.uploaded_by,
            )
            raise DocumentErrors.not_authorized()

        # ---- Steps 3–4: Object + background side effects ---------------
        await self._release(doc, record_activity=True)

        # ---- Step 5: Delete the row ------------------------------------
        try:
            await self._db.delete(doc)
            await self._db.commit()
        except SQLAlchemyError:
            logger.exception("Document row delete failed | doc=%s key=%s", doc.id, doc.storage_key)
            await self._db.rollback()
            raise DocumentErrors.delete_failed()

        logger.info("Delete ok | doc=%s subject=%s user=%s", doc.id, doc.subject_id, self._user.user_id)

    async def release_subject_documents(self, subject_id: uuid.UUID) -> int:
        """
        Objects and index entries of every document of a subject, ahead of the
        subject delete (the rows go with it by cascade). No activities are
        recorded for a subject that is about to disappear.
        """
        result = await self._db.execute(select(Document).where(Document.subject_id == subject_id))
        docs = list(result.scalars().all())
        for doc in docs:
            await self._release(doc, record_activity=False)
        return len(docs)

    async def _release(self, doc: Document, *, record_activity: bool) -> None:
        try:
            await self._storage.delete_object(doc.storage_key)
        except Exception as exc:
            logger.error(
                "S3 delete failed, continuing | doc=%s key=%s error=%s",
                doc.id, doc.storage_key, exc,
            )

        try:
            self._publisher.document_deleted(doc, self._user.user_id, record_activity=record_activity)
        except Exception as exc:
            logger.error("Failed to schedule post-delete tasks | doc=%s error=%s", doc.id, exc)
