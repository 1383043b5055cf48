"""
Favorites API Router

  GET /favorites    the caller's favorite subjects and documents

Toggles live next to their targets:
  POST /subjects/{subject_id}/favorite, POST /documents/{document_id}/favorite
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.auth.dependencies import DB, CurrentUser
from app.schemas.common import ErrorResponse, UserPublic, envelope
from app.schemas.documents import DocumentListItem
from app.schemas.favorites import FavoritesOut, FavoriteSubject
from app.services.favorites import FavoritesService

router = APIRouter(tags=["Favorites"])


@router.get("/favorites", summary="Favorite subjects and documents", responses={401: {"model": ErrorResponse}})
async def list_favorites(db: DB, user: CurrentUser) -> JSONResponse:
    subjects, documents = await FavoritesService(db).list_favorites(user.user_id)

    doc_items = []
    for doc in documents:
        item = DocumentListItem.model_validate(doc, from_attributes=True)
        item.is_favorite = True
        item.uploader = UserPublic.of(doc.uploader)
        doc_items.append(item)

    return envelope(
        FavoritesOut(
            subjects=[FavoriteSubject.model_validate(s) for s in subjects],
            documents=doc_items,
        )
    )
