"""
Search Index — Abstract Base

The rest of the application only speaks this protocol; the concrete backend
(Meilisearch) is chosen by app.search.factory.

Consistency contract:
  - The relational database is the source of truth. The index is a
    best-effort mirror updated from background tasks.
  - Index writes are never awaited on the request path and their failures
    are logged, not raised to clients.
  - Searches ARE on the request path; a failing search surfaces as
    SearchIndexError and the route answers 500 SEARCH_FAILED.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from uuid import UUID

from app.models.catalog import Subject
from app.models.documents import Document


class SearchIndexError(Exception):
    """The search backend could not complete a request."""


# ---------------------------------------------------------------------------
# Shared data types
# ---------------------------------------------------------------------------

@dataclass
class SearchResponse:
    """Result page of a full-text query."""
    query:           str
    hits:            list[dict] = field(default_factory=list)
    estimated_total: int = 0
    processing_ms:   int = 0


def document_payload(doc: Document) -> dict:
    """Flatten a Document row into the shape stored in the documents index."""
    return {
        "id":            str(doc.id),
        "subject_id":    str(doc.subject_id),
        "uploaded_by":   str(doc.uploaded_by),
        "type":          doc.type,
        "category_id":   str(doc.category_id) if doc.category_id else None,
        "original_name": doc.original_name,
        "mime_type":     doc.mime_type,
        "file_size":     doc.file_size,
        "content_text":  doc.content_text or "",
        "created_at":    doc.created_at.isoformat() if doc.created_at else None,
    }


def subject_payload(subject: Subject) -> dict:
    """Flatten a Subject row into the shape stored in the subjects index."""
    return {
        "id":             str(subject.id),
        "semester_id":    str(subject.semester_id),
        "code":           subject.code,
        "name_cs":        subject.name_cs,
        "name_en":        subject.name_en,
        "description_cs": subject.description_cs or "",
        "description_en": subject.description_en or "",
        "credits":        subject.credits,
    }


# ---------------------------------------------------------------------------
# Abstract interface
# ---------------------------------------------------------------------------

class SearchIndexBase(ABC):

    @abstractmethod
    async def ensure_indexes(self) -> None:
        """Create indexes and apply filter/sort settings (idempotent)."""

    @abstractmethod
    async def index_document(self, payload: dict) -> None:
        """Insert or replace one document entry (keyed by payload["id"])."""

    @abstractmethod
    async def delete_document(self, document_id: UUID | str) -> None:
        """Remove one document entry. Missing entries are not an error."""

    @abstractmethod
    async def search_documents(
        self,
        query: str,
        subject_id: UUID | None = None,
        limit: int = 20,
    ) -> SearchResponse:
        """Full-text search over document names and extracted text."""

    @abstractmethod
    async def index_subject(self, payload: dict) -> None:
        """Insert or replace one subject entry."""

    @abstractmethod
    async def delete_subject(self, subject_id: UUID | str) -> None:
        """Remove one subject entry."""

    @abstractmethod
    async def search_subjects(
        self,
        query: str,
        semester_id: UUID | None = None,
        limit: int = 100,
    ) -> SearchResponse:
        """Full-text search over subject names, codes and descriptions."""

    async def aclose(self) -> None:
        """Release network resources. Default: nothing to release."""
