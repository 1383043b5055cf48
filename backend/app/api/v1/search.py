"""
Search API Router

  GET /search?q=&subject_id=            documents (names + extracted text)
  GET /search/subjects?q=&semester_id=  subjects (names, code, description)

Both proxy to the search index. The index is a best-effort mirror of the
database, so a fresh upload can take a moment to show up.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from app.auth.dependencies import CurrentUser, SearchIndex
from app.schemas.common import ErrorResponse, envelope
from app.schemas.documents import DocumentErrors
from app.search.base import SearchIndexError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["Search"])

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

DOCUMENT_HIT_LIMIT = 20
SUBJECT_HIT_LIMIT = 100


@router.get("", summary="Search documents", responses=_ERRORS)
async def search_documents(
    search:     SearchIndex,
    user:       CurrentUser,
    q:          str = Query("", max_length=500, description="Full-text query"),
    subject_id: Optional[UUID] = Query(None),
) -> JSONResponse:
    try:
        result = await search.search_documents(q, subject_id=subject_id, limit=DOCUMENT_HIT_LIMIT)
    except SearchIndexError as exc:
        logger.error("Document search failed | q=%r subject=%s error=%s", q, subject_id, exc)
        raise DocumentErrors.search_failed()
    return envelope(asdict(result))


@router.get("/subjects", summary="Search subjects", responses=_ERRORS)
async def search_subjects(
    search:      SearchIndex,
    user:        CurrentUser,
    q:           str = Query("", max_length=500),
    semester_id: Optional[UUID] = Query(None),
) -> JSONResponse:
    try:
        result = await search.search_subjects(q, semester_id=semester_id, limit=SUBJECT_HIT_LIMIT)
    except SearchIndexError as exc:
        logger.error("Subject search failed | q=%r semester=%s error=%s", q, semester_id, exc)
        raise DocumentErrors.search_failed()
    return envelope(asdict(result))
