"""
Document Categories — Pydantic Request/Response Schemas & Error Factories
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import status
from pydantic import BaseModel, ConfigDict, Field

from app.core.errors import ApiError, bad_request, conflict, forbidden, not_found
from app.models.documents import DocumentType


class CategoryCreate(BaseModel):
    type:    DocumentType
    name_cs: str = Field(..., min_length=1, max_length=200)
    name_en: str | None = Field(None, max_length=200)


class CategoryUpdate(BaseModel):
    name_cs:     str | None = Field(None, min_length=1, max_length=200)
    name_en:     str | None = Field(None, max_length=200)
    order_index: int | None = None


class CategoryOrderItem(BaseModel):
    id:          UUID
    order_index: int


class CategoryReorderRequest(BaseModel):
    categories: list[CategoryOrderItem] = Field(..., min_length=1)


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id:           UUID
    subject_id:   UUID
    type:         DocumentType
    name_cs:      str
    name_en:      str | None
    order_index:  int
    is_protected: bool
    created_by:   UUID | None
    created_at:   datetime
    updated_at:   datetime


class CategoryErrors:

    @staticmethod
    def not_found() -> ApiError:
        return not_found("Category")

    @staticmethod
    def duplicate(name_cs: str) -> ApiError:
        return conflict(f"Category '{name_cs}' already exists", code="DUPLICATE_CATEGORY")

    @staticmethod
    def protected(action: str) -> ApiError:
        return forbidden(f"Cannot {action} the Unassigned category")

    @staticmethod
    def invalid_type(value: str) -> ApiError:
        return bad_request(
            f"Invalid type '{value}'. Expected one of: lecture, seminar, other",
            code="INVALID_TYPE",
        )

    @staticmethod
    def wrong_subject() -> ApiError:
        return ApiError(
            status.HTTP_404_NOT_FOUND,
            "NOT_FOUND",
            "Category not found in this subject",
        )
