"""
SQLAlchemy ORM Model — Activity feed

Activities are written from background tasks, sometimes after the document
they describe has already been deleted. document_id is therefore a plain
indexed column without a foreign key, and the document's display name is
copied into metadata at write time.
"""

from __future__ import annotations

import uuid
from enum import Enum

from sqlalchemy import ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType, TimestampMixin
from app.models.catalog import Subject
from app.models.documents import Document
from app.models.users import User


class ActivityType(str, Enum):
    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_DELETED = "document_deleted"


class Activity(TimestampMixin, Base):
    __tablename__ = "activities"
    __table_args__ = (
        Index("idx_activities_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    subject_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("subjects.id", ondelete="CASCADE"), index=True
    )
    document_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, index=True)
    # "metadata" is reserved on declarative classes
    details: Mapped[dict] = mapped_column("metadata", JSONType, nullable=False, default=dict)

    user: Mapped[User] = relationship()
    subject: Mapped[Subject | None] = relationship()
    document: Mapped[Document | None] = relationship(
        primaryjoin="foreign(Activity.document_id) == Document.id",
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<Activity id={self.id} type={self.activity_type} doc={self.document_id}>"
