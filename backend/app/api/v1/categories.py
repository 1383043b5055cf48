"""
Document Categories API Router

  GET    /subjects/{subject_id}/categories?type=     any user
  POST   /admin/subjects/{subject_id}/categories     admin
  PUT    /admin/categories/reorder                   admin, per-item
  PUT    /admin/categories/{category_id}             admin
  DELETE /admin/categories/{category_id}             admin, documents → Unassigned

The rules themselves live in services/categories.py (CategoryPolicy).
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from app.auth.dependencies import DB, AdminUser, CurrentUser
from app.schemas.categories import (
    CategoryCreate,
    CategoryOut,
    CategoryReorderRequest,
    CategoryUpdate,
)
from app.schemas.common import ErrorResponse, envelope
from app.services.categories import CategoryPolicy, parse_document_type

router = APIRouter(tags=["Categories"])

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get(
    "/subjects/{subject_id}/categories",
    summary="Categories of a subject, ordered for display",
    responses=_ERRORS,
)
async def list_categories(
    subject_id: UUID,
    db:         DB,
    user:       CurrentUser,
    type:       Optional[str] = Query(None, description="lecture | seminar | other"),
) -> JSONResponse:
    doc_type = parse_document_type(type) if type else None
    categories = await CategoryPolicy(db).list_categories(subject_id, doc_type)
    return envelope([CategoryOut.model_validate(c) for c in categories])


@router.post(
    "/admin/subjects/{subject_id}/categories",
    status_code=status.HTTP_201_CREATED,
    summary="Create a category (appended after the existing ones)",
    responses=_ERRORS,
)
async def create_category(
    subject_id: UUID,
    body:       CategoryCreate,
    db:         DB,
    admin:      AdminUser,
) -> JSONResponse:
    category = await CategoryPolicy(db).create(subject_id, body, created_by=admin.user_id)
    return envelope(CategoryOut.model_validate(category), status_code=status.HTTP_201_CREATED)


# Declared before /{category_id} so "reorder" is never parsed as an id.
@router.put(
    "/admin/categories/reorder",
    summary="Apply new display positions, item by item",
    responses=_ERRORS,
)
async def reorder_categories(
    body:  CategoryReorderRequest,
    db:    DB,
    admin: AdminUser,
) -> JSONResponse:
    updated = await CategoryPolicy(db).reorder(body.categories)
    return envelope({"updated": updated})


@router.put(
    "/admin/categories/{category_id}",
    summary="Rename or move a category",
    responses=_ERRORS,
)
async def update_category(
    category_id: UUID,
    body:        CategoryUpdate,
    db:          DB,
    admin:       AdminUser,
) -> JSONResponse:
    category = await CategoryPolicy(db).update(category_id, body)
    return envelope(CategoryOut.model_validate(category))


@router.delete(
    "/admin/categories/{category_id}",
    summary="Delete a category; its documents move to Unassigned",
    responses=_ERRORS,
)
async def delete_category(category_id: UUID, db: DB, admin: AdminUser) -> JSONResponse:
    moved = await CategoryPolicy(db).delete(category_id)
    return envelope({"moved_documents": moved})
