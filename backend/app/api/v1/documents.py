"""
Documents API Router

  POST   /subjects/{subject_id}/documents     upload (multipart)
  GET    /subjects/{subject_id}/documents     list, favorites first
  GET    /documents/{document_id}             detail with uploader + subject
  GET    /documents/{document_id}/download    file bytes, original filename
  PUT    /documents/{document_id}/category    move to another category
  DELETE /documents/{document_id}             uploader or admin
  POST   /documents/{document_id}/favorite    toggle favorite

Upload lifecycle:
  ┌─────────────────────────────────────────────────────────┐
  │ 1. JWT verification → user_id + role                     │
  │ 2. Size (≤ 50 MiB) + MIME allow-list                     │
  │ 3. Subject exists, category resolved                     │
  │ 4. Object upload under <uuid4><ext>                      │
  │ 5. Text extraction (best effort, timeout-bounded)        │
  │ 6. DB insert (object deleted again if this fails)        │
  │ 7. Search index + activity scheduled → returns 201       │
  └─────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, File, Form, Query, UploadFile, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy import case, select
from sqlalchemy.orm import selectinload

from app.auth.dependencies import DB, CurrentUser, Extractor, Publisher, Storage
from app.auth.rbac import can_modify
from app.models.documents import Document
from app.models.users import user_favorite_documents
from app.schemas.common import ErrorResponse, UserPublic, envelope
from app.schemas.documents import (
    AssignCategoryRequest,
    DocumentDetail,
    DocumentErrors,
    DocumentListItem,
    DocumentOut,
)
from app.schemas.favorites import FavoriteToggleOut
from app.services.categories import CategoryPolicy, parse_document_type
from app.services.favorites import FavoritesService
from app.services.ingestion import IngestionService
from app.services.removal import RemovalService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Documents"])

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _detail(doc: Document) -> DocumentDetail:
    out = DocumentDetail.model_validate(doc, from_attributes=True)
    out.uploader = UserPublic.of(doc.uploader)
    return out


async def _load_document(db, document_id: UUID, *, with_relations: bool = False) -> Document:
    stmt = select(Document).where(Document.id == document_id)
    if with_relations:
        stmt = stmt.options(selectinload(Document.uploader), selectinload(Document.subject))
    doc = (await db.execute(stmt)).scalars().first()
    if doc is None:
        raise DocumentErrors.document_not_found()
    return doc


# ---------------------------------------------------------------------------
# POST /subjects/{subject_id}/documents
# ---------------------------------------------------------------------------

@router.post(
    "/subjects/{subject_id}/documents",
    status_code=status.HTTP_201_CREATED,
    summary="Upload a document to a subject",
    description=(
        "Accepts PDF, DOCX, PPTX, XLSX, XLS, JPEG, PNG, TXT and CSV files up to 50 MB. "
        "Text is extracted for search where possible."
    ),
    responses=_ERRORS,
)
async def upload_document(
    subject_id: UUID,
    db:         DB,
    user:       CurrentUser,
    storage:    Storage,
    extractor:  Extractor,
    publisher:  Publisher,
    file:        Optional[UploadFile] = File(None, description="Document file (max 50 MB)"),
    type:        Optional[str] = Form(None, description="lecture | seminar | other (default other)"),
    category_id: Optional[UUID] = Form(None, description="Category of the same subject and type"),
) -> JSONResponse:
    doc_type = parse_document_type(type)

    service = IngestionService(
        db=db,
        storage=storage,
        extractor=extractor,
        publisher=publisher,
        user=user,
    )
    doc = await service.ingest(
        subject_id=subject_id,
        file=file,
        doc_type=doc_type,
        category_id=category_id,
    )
    return envelope(DocumentOut.model_validate(doc), status_code=status.HTTP_201_CREATED)


# ---------------------------------------------------------------------------
# GET /subjects/{subject_id}/documents
# ---------------------------------------------------------------------------

@router.get(
    "/subjects/{subject_id}/documents",
    summary="List documents of a subject (favorites first)",
    responses=_ERRORS,
)
async def list_documents(
    subject_id:  UUID,
    db:          DB,
    user:        CurrentUser,
    type:        Optional[str] = Query(None, description="Filter by lecture | seminar | other"),
    category_id: Optional[UUID] = Query(None),
    limit:       int = Query(20, ge=1, le=100),
    offset:      int = Query(0, ge=0),
) -> JSONResponse:
    fav = user_favorite_documents
    is_favorite = case((fav.c.user_id.is_not(None), True), else_=False).label("is_favorite")

    stmt = (
        select(Document, is_favorite)
        .outerjoin(fav, (fav.c.document_id == Document.id) & (fav.c.user_id == user.user_id))
        .where(Document.subject_id == subject_id)
        .options(selectinload(Document.uploader))
    )
    if type:
        stmt = stmt.where(Document.type == parse_document_type(type).value)
    if category_id is not None:
        stmt = stmt.where(Document.category_id == category_id)

    stmt = stmt.order_by(is_favorite.desc(), Document.created_at.desc()).limit(limit).offset(offset)
    rows = (await db.execute(stmt)).all()

    items = []
    for doc, favorite in rows:
        item = DocumentListItem.model_validate(doc, from_attributes=True)
        item.is_favorite = bool(favorite)
        item.uploader = UserPublic.of(doc.uploader)
        items.append(item)
    return envelope(items)


# ---------------------------------------------------------------------------
# GET /documents/{document_id}
# ---------------------------------------------------------------------------

@router.get("/documents/{document_id}", summary="Document detail", responses=_ERRORS)
async def get_document(document_id: UUID, db: DB, user: CurrentUser) -> JSONResponse:
    doc = await _load_document(db, document_id, with_relations=True)
    return envelope(_detail(doc))


# ---------------------------------------------------------------------------
# GET /documents/{document_id}/download
# ---------------------------------------------------------------------------

@router.get(
    "/documents/{document_id}/download",
    summary="Download the original file",
    response_class=Response,
    responses=_ERRORS,
)
async def download_document(
    document_id: UUID,
    db:          DB,
    user:        CurrentUser,
    storage:     Storage,
) -> Response:
    doc = await _load_document(db, document_id)

    try:
        download = await storage.get_object(doc.storage_key)
    except FileNotFoundError:
        logger.warning("Download of missing object | doc=%s key=%s", doc.id, doc.storage_key)
        raise DocumentErrors.document_not_found()
    except Exception:
        logger.exception("S3 download failed | doc=%s key=%s", doc.id, doc.storage_key)
        raise DocumentErrors.download_failed()

    ascii_name = doc.original_name.encode("ascii", "replace").decode().replace('"', "'")
    disposition = (
        f'attachment; filename="{ascii_name}"; '
        f"filename*=UTF-8''{quote(doc.original_name)}"
    )
    return Response(
        content=download.body,
        media_type=doc.mime_type,
        headers={"Content-Disposition": disposition},
    )


# ---------------------------------------------------------------------------
# PUT /documents/{document_id}/category
# ---------------------------------------------------------------------------

@router.put(
    "/documents/{document_id}/category",
    summary="Move a document to another category of its subject",
    responses=_ERRORS,
)
async def assign_category(
    document_id: UUID,
    body:        AssignCategoryRequest,
    db:          DB,
    user:        CurrentUser,
) -> JSONResponse:
    doc = await _load_document(db, document_id)
    if not can_modify(user, doc.uploaded_by):
        raise DocumentErrors.not_authorized()

    doc = await CategoryPolicy(db).assign_document(doc, body.category_id)
    return envelope(DocumentOut.model_validate(doc))


# ---------------------------------------------------------------------------
# DELETE /documents/{document_id}
# ---------------------------------------------------------------------------

@router.delete(
    "/documents/{document_id}",
    summary="Delete a document (uploader or admin)",
    responses=_ERRORS,
)
async def delete_document(
    document_id: UUID,
    db:          DB,
    user:        CurrentUser,
    storage:     Storage,
    publisher:   Publisher,
) -> JSONResponse:
    service = RemovalService(db=db, storage=storage, publisher=publisher, user=user)
    await service.remove(document_id)
    return envelope()


# ---------------------------------------------------------------------------
# POST /documents/{document_id}/favorite
# ---------------------------------------------------------------------------

@router.post(
    "/documents/{document_id}/favorite",
    summary="Toggle the document in the caller's favorites",
    responses=_ERRORS,
)
async def toggle_document_favorite(document_id: UUID, db: DB, user: CurrentUser) -> JSONResponse:
    is_favorite = await FavoritesService(db).toggle_document(user.user_id, document_id)
    return envelope(FavoriteToggleOut(is_favorite=is_favorite))
