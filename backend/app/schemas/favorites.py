"""
Favorites — toggle result and the caller's favorites overview.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.schemas.catalog import SemesterOut, SubjectOut
from app.schemas.documents import DocumentListItem


class FavoriteToggleOut(BaseModel):
    is_favorite: bool


class FavoriteSubject(SubjectOut):
    semester: SemesterOut | None = None
    is_favorite: bool = True


class FavoritesOut(BaseModel):
    subjects:  list[FavoriteSubject] = Field(default_factory=list)
    documents: list[DocumentListItem] = Field(default_factory=list)
