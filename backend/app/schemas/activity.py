"""
Activity feed — response schema.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.activity import Activity
from app.schemas.catalog import SubjectSummary
from app.schemas.common import UserPublic


class ActivityDocument(BaseModel):
    id:            UUID
    original_name: str
    mime_type:     str


class ActivityOut(BaseModel):
    id:            UUID
    activity_type: str
    user_id:       UUID
    subject_id:    UUID | None = None
    document_id:   UUID | None = None
    metadata:      dict[str, Any] = Field(default_factory=dict)
    created_at:    datetime
    user:          UserPublic | None = None
    subject:       SubjectSummary | None = None
    document:      ActivityDocument | None = None

    @classmethod
    def of(cls, activity: Activity) -> "ActivityOut":
        doc = activity.document
        return cls(
            id=activity.id,
            activity_type=activity.activity_type,
            user_id=activity.user_id,
            subject_id=activity.subject_id,
            document_id=activity.document_id,
            metadata=activity.details or {},
            created_at=activity.created_at,
            user=UserPublic.of(activity.user),
            subject=SubjectSummary.model_validate(activity.subject) if activity.subject else None,
            document=(
                ActivityDocument(id=doc.id, original_name=doc.original_name, mime_type=doc.mime_type)
                if doc is not None else None
            ),
        )
