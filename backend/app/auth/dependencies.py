"""
Composed FastAPI Dependencies

Auth + DB session + the process-wide collaborators built in the app
lifespan (object storage, text extractor, search index, event publisher).
Route handlers import from here — never from db/session, storage/
or search/ directly.

This is the single wiring point for the entire request context.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_admin
from app.auth.token import TokenPayload, get_current_user
from app.db.session import get_db
from app.processing.extractor import TikaTextExtractor
from app.search.base import SearchIndexBase
from app.storage.s3 import S3StorageService
from app.workers.publisher import EventPublisher


# ---------------------------------------------------------------------------
# Collaborators — constructed once in lifespan, stored on app.state
# ---------------------------------------------------------------------------

def get_storage(request: Request) -> S3StorageService:
    return request.app.state.storage


def get_extractor(request: Request) -> TikaTextExtractor:
    return request.app.state.extractor


def get_search_index(request: Request) -> SearchIndexBase:
    return request.app.state.search


def get_publisher(request: Request) -> EventPublisher:
    return request.app.state.publisher


# ---------------------------------------------------------------------------
# Type aliases for cleaner route signatures
# ---------------------------------------------------------------------------

DB          = Annotated[AsyncSession,      Depends(get_db)]
CurrentUser = Annotated[TokenPayload,      Depends(get_current_user)]
AdminUser   = Annotated[TokenPayload,      Depends(require_admin)]
Storage     = Annotated[S3StorageService,  Depends(get_storage)]
Extractor   = Annotated[TikaTextExtractor, Depends(get_extractor)]
SearchIndex = Annotated[SearchIndexBase,   Depends(get_search_index)]
Publisher   = Annotated[EventPublisher,    Depends(get_publisher)]
