"""
Document Ingestion Service

Orchestrates the upload pipeline:
  1. Validate size (≤ 50 MiB) and declared MIME type (allow-list)
  2. Check the subject exists
  3. Resolve the category (explicit one, or the subject's Unassigned bucket)
  4. Generate the storage key: <uuid4><original extension>
  5. Upload the bytes to object storage
  6. Extract text (best effort, bounded by a timeout)
  7. Insert the document row; on failure delete the uploaded object
  8. Hand search indexing and the "uploaded" activity to the background
  9. Return the persisted document

Consistency invariants enforced here:
  - No document row ever points at a missing object: the row is written
    only after the upload succeeded.
  - A failed row insert triggers a best-effort delete of the object. If
    that delete fails too the object is orphaned and the failure logged.
  - Steps 6 and 8 never fail the upload.
  - Answer attachments are created here first (type "other"); the caller
    back-fills answer_id once the answer exists, see attach_to_answer().
"""

from __future__ import annotations

import logging
import uuid

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.token import TokenPayload
from app.models.catalog import Subject
from app.models.documents import Document, DocumentType
from app.processing.extractor import ExtractionError, TikaTextExtractor
from app.schemas.documents import (
    ALLOWED_CONTENT_TYPES,
    MAX_FILE_SIZE_BYTES,
    DocumentErrors,
    normalize_content_type,
)
from app.services.categories import CategoryPolicy
from app.storage.s3 import S3StorageService
from app.workers.publisher import EventPublisher

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Filename helpers
# ---------------------------------------------------------------------------

def _get_extension(filename: str) -> str:
    """Return lowercased file extension including the dot."""
    basename = filename.replace("\\", "/").rsplit("/", 1)[-1]
    parts = basename.rsplit(".", 1)
    if len(parts) != 2 or not parts[1]:
        return ""
    ext = parts[1].lower()
    # Keep keys boring: short alphanumeric extensions only
    return f".{ext}" if ext.isalnum() and len(ext) <= 10 else ""


def _display_name(filename: str) -> str:
    """Strip any directory component the client may have sent; cap the length."""
    basename = filename.replace("\\", "/").rsplit("/", 1)[-1].strip()
    return basename[:255] or "upload"


def build_storage_key(filename: str) -> str:
    """<uuid4><ext>, e.g. '0b6f…9e.pdf'. Never derived from the filename body."""
    return f"{uuid.uuid4()}{_get_extension(filename)}"


# ---------------------------------------------------------------------------
# Core ingestion orchestrator
# ---------------------------------------------------------------------------

class IngestionService:
    """
    Stateless service object, one instance per request.
    All dependencies are injected (testable, no hidden globals).
    """

    def __init__(
        self,
        db:        AsyncSession,
        storage:   S3StorageService,
        extractor: TikaTextExtractor,
        publisher: EventPublisher,
        user:      TokenPayload,
    ) -> None:
        self._db        = db
        self._storage   = storage
        self._extractor = extractor
        self._publisher = publisher
        self._user      = user

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    async def ingest(
        self,
        subject_id:  uuid.UUID,
        file:        UploadFile | None,
        doc_type:    DocumentType = DocumentType.OTHER,
        category_id: uuid.UUID | None = None,
    ) -> Document:
        """
        Full ingestion pipeline. Returns the committed Document.
        Raises ApiError on every rejected or failed upload.
        """
        user_id = self._user.user_id

        # ---- Step 1: Validate size and type -----------------------------
        file_bytes = await self._read_upload(file)
        mime_type = normalize_content_type(file.content_type)
        if mime_type not in ALLOWED_CONTENT_TYPES:
            raise DocumentErrors.unsupported_file_type(mime_type)

        # ---- Step 2: Subject must exist --------------------------------
        if await self._db.get(Subject, subject_id) is None:
            raise DocumentErrors.subject_not_found()

        # ---- Step 3: Category ------------------------------------------
        category = await CategoryPolicy(self._db).resolve_for_document(
            subject_id, doc_type, category_id, created_by=user_id,
        )

        # ---- Step 4: Storage key ---------------------------------------
        original_name = _display_name(file.filename or "upload")
        storage_key = build_storage_key(original_name)

        logger.info(
            "Ingest start | user=%s subject=%s file=%s size=%d mime=%s",
            user_id, subject_id, original_name, len(file_bytes), mime_type,
        )

        # ---- Step 5: Upload to object storage --------------------------
        try:
            await self._storage.put_object(
                key=storage_key,
                body=file_bytes,
                content_type=mime_type,
            )
        except Exception:
            logger.exception("S3 upload failed | subject=%s key=%s", subject_id, storage_key)
            raise DocumentErrors.storage_error()

        # ---- Step 6: Extract text (best effort) ------------------------
        content_text = await self._extract_text(file_bytes, mime_type, storage_key)

        # ---- Step 7: Persist document record ---------------------------
        doc = Document(
            id=uuid.uuid4(),
            subject_id=subject_id,
            uploaded_by=user_id,
            type=doc_type.value,
            category_id=category.id,
            storage_key=storage_key,
            original_name=original_name,
            file_size=len(file_bytes),
            mime_type=mime_type,
            content_text=content_text,
        )

        try:
            self._db.add(doc)
            await self._db.commit()
        except SQLAlchemyError:
            logger.exception("Document insert failed | subject=%s key=%s", subject_id, storage_key)
            await self._db.rollback()
            await self._discard_object(storage_key)
            raise DocumentErrors.save_failed()

        logger.info(
            "Upload ok | doc=%s subject=%s key=%s size=%d text_chars=%d",
            doc.id, subject_id, storage_key, doc.file_size, len(content_text),
        )

        # ---- Step 8: Background side effects ---------------------------
        try:
            self._publisher.document_uploaded(doc, user_id)
        except Exception as exc:
            # Non-fatal: the document is stored; the index catches up on
            # the next re-index.
            logger.error("Failed to schedule post-upload tasks | doc=%s error=%s", doc.id, exc)

        return doc

    async def attach_to_answer(self, doc: Document, answer_id: uuid.UUID) -> Document:
        """Second phase of an answer attachment: point the document at its answer."""
        doc.answer_id = answer_id
        await self._db.commit()
        return doc

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _read_upload(self, file: UploadFile | None) -> bytes:
        """
        Read the upload into memory with a hard size ceiling.
        Raises 400 if the file is missing or too large.
        """
        if file is None or not file.filename:
            raise DocumentErrors.missing_file()

        # Cheap pre-check when the multipart parser already knows the size
        if file.size is not None and file.size > MAX_FILE_SIZE_BYTES:
            raise DocumentErrors.file_too_large(file.size)

        data = await file.read()
        if len(data) > MAX_FILE_SIZE_BYTES:
            raise DocumentErrors.file_too_large(len(data))
        return data

    async def _extract_text(self, data: bytes, mime_type: str, storage_key: str) -> str:
        if not self._extractor.supports(mime_type):
            return ""
        try:
            result = await self._extractor.extract(data, mime_type)
        except ExtractionError as exc:
            logger.warning("Text extraction failed | key=%s mime=%s error=%s", storage_key, mime_type, exc)
            return ""
        except Exception:
            logger.exception("Text extraction crashed | key=%s mime=%s", storage_key, mime_type)
            return ""
        return result.text

    async def _discard_object(self, storage_key: str) -> None:
        """Compensation for a failed insert. Logged, never raised."""
        try:
            await self._storage.delete_object(storage_key)
            logger.info("Orphan cleanup ok | key=%s", storage_key)
        except Exception as exc:
            logger.error("Orphan cleanup failed, object left in bucket | key=%s error=%s", storage_key, exc)
