"""
Documents — Pydantic Request/Response Schemas & Error Factories

Covers upload, listing, detail, category moves and search of subject
documents.

Design decisions:
  - The allow-list is checked against the client-declared Content-Type
    (parameters such as "; charset=utf-8" are stripped first).
  - storage_key is never exposed; downloads go through the API.
  - content_text is returned on detail/upload responses only.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import status
from pydantic import BaseModel, ConfigDict, Field

from app.core.config import settings
from app.core.errors import ApiError, forbidden, internal, not_found
from app.models.documents import DocumentType
from app.schemas.catalog import SubjectSummary
from app.schemas.common import UserPublic


# ---------------------------------------------------------------------------
# Allowed MIME types — enforced before touching object storage
# ---------------------------------------------------------------------------

ALLOWED_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",    # .docx
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",  # .pptx
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",          # .xlsx
        "application/vnd.ms-excel",                                                   # .xls
        "image/jpeg",
        "image/png",
        "text/plain",
        "text/csv",
    }
)

# Types the extraction service is asked to read; any text/* also qualifies
EXTRACTABLE_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    }
)

MAX_FILE_SIZE_BYTES: int = settings.max_upload_bytes


def normalize_content_type(raw: str | None) -> str:
    """'Text/Plain; charset=utf-8' → 'text/plain'."""
    if not raw:
        return ""
    return raw.split(";", 1)[0].strip().lower()


def is_text_extractable(mime_type: str) -> bool:
    return mime_type in EXTRACTABLE_CONTENT_TYPES or mime_type.startswith("text/")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class DocumentOut(BaseModel):
    """Returned by upload (201) and as the base of every document view."""
    model_config = ConfigDict(from_attributes=True)

    id:            UUID
    subject_id:    UUID
    uploaded_by:   UUID
    answer_id:     UUID | None = None
    type:          DocumentType
    category_id:   UUID | None = None
    original_name: str
    file_size:     int
    mime_type:     str
    content_text:  str | None = None
    created_at:    datetime
    updated_at:    datetime


class DocumentListItem(BaseModel):
    """Row in GET /subjects/{id}/documents, favorites first."""
    model_config = ConfigDict(from_attributes=True)

    id:            UUID
    subject_id:    UUID
    uploaded_by:   UUID
    answer_id:     UUID | None = None
    type:          DocumentType
    category_id:   UUID | None = None
    original_name: str
    file_size:     int
    mime_type:     str
    created_at:    datetime
    is_favorite:   bool = False
    uploader:      UserPublic | None = None


class DocumentDetail(DocumentOut):
    uploader: UserPublic | None = None
    subject:  SubjectSummary | None = None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class AssignCategoryRequest(BaseModel):
    category_id: UUID = Field(..., description="Target category within the same subject")


# ---------------------------------------------------------------------------
# Error factories — keep error construction consistent across routes
# ---------------------------------------------------------------------------

class DocumentErrors:

    @staticmethod
    def missing_file() -> ApiError:
        return ApiError(status.HTTP_400_BAD_REQUEST, "MISSING_FILE", "No file provided")

    @staticmethod
    def file_too_large(size_bytes: int) -> ApiError:
        limit_mb = MAX_FILE_SIZE_BYTES // (1024 * 1024)
        return ApiError(
            status.HTTP_400_BAD_REQUEST,
            "FILE_TOO_LARGE",
            f"File exceeds {limit_mb}MB limit ({size_bytes} bytes received)",
        )

    @staticmethod
    def unsupported_file_type(mime_type: str) -> ApiError:
        return ApiError(
            status.HTTP_400_BAD_REQUEST,
            "UNSUPPORTED_FILE_TYPE",
            f"Unsupported file type: {mime_type or 'unknown'}",
        )

    @staticmethod
    def invalid_type(value: str) -> ApiError:
        return ApiError(
            status.HTTP_400_BAD_REQUEST,
            "INVALID_TYPE",
            f"Invalid document type '{value}'. Expected one of: lecture, seminar, other",
        )

    @staticmethod
    def invalid_category() -> ApiError:
        return ApiError(
            status.HTTP_400_BAD_REQUEST,
            "INVALID_CATEGORY",
            "Category does not belong to this subject and document type",
        )

    @staticmethod
    def subject_not_found() -> ApiError:
        return not_found("Subject")

    @staticmethod
    def document_not_found() -> ApiError:
        return not_found("Document")

    @staticmethod
    def not_authorized() -> ApiError:
        return forbidden("Only the uploader or an admin can modify this document")

    @staticmethod
    def storage_error() -> ApiError:
        return internal("Failed to upload file", code="STORAGE_ERROR")

    @staticmethod
    def save_failed() -> ApiError:
        return internal("Failed to save document record", code="SAVE_FAILED")

    @staticmethod
    def delete_failed() -> ApiError:
        return internal("Failed to delete document", code="DELETE_FAILED")

    @staticmethod
    def download_failed() -> ApiError:
        return internal("Failed to download file", code="STORAGE_ERROR")

    @staticmethod
    def search_failed() -> ApiError:
        return internal("Search failed", code="SEARCH_FAILED")
