"""
SQLAlchemy ORM Models — Documents & Document Categories

Storage contract:
    Every Document row references exactly one object in the bucket
    (storage_key = "<uuid4><ext>"). The row is written only after the
    object upload succeeded; the object is removed if the row insert fails.

Category contract:
    Each (subject, type) pair owns exactly one protected "Unassigned"
    category pinned to order_index 999. It cannot be renamed, re-ordered or
    deleted. Deleting any other category first moves its documents there.
"""

from __future__ import annotations

import uuid
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin
from app.models.catalog import Subject
from app.models.users import User


class DocumentType(str, Enum):
    LECTURE = "lecture"
    SEMINAR = "seminar"
    OTHER = "other"


# Reserved "Unassigned" bucket
UNASSIGNED_NAME_CS = "Nepřiřazeno"
UNASSIGNED_NAME_EN = "Unassigned"
UNASSIGNED_ORDER_INDEX = 999


# ---------------------------------------------------------------------------
# DocumentCategory — document_categories
# ---------------------------------------------------------------------------

class DocumentCategory(TimestampMixin, Base):
    """
    Ordered, named bucket of documents within one (subject, type) pair.
    """

    __tablename__ = "document_categories"
    __table_args__ = (
        CheckConstraint("type IN ('lecture', 'seminar', 'other')", name="type"),
        UniqueConstraint("subject_id", "type", "name_cs", name="uq_document_categories_subject_type_name"),
        Index("idx_document_categories_subject_type", "subject_id", "type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    subject_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    name_cs: Mapped[str] = mapped_column(String(200), nullable=False)
    name_en: Mapped[str | None] = mapped_column(String(200))
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_protected: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
        comment="Set only on the seeded Unassigned category",
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
    )

    @property
    def is_unassigned(self) -> bool:
        # Rows seeded before is_protected existed are recognised by name.
        return (
            self.is_protected
            or self.name_cs == UNASSIGNED_NAME_CS
            or self.name_en == UNASSIGNED_NAME_EN
        )

    def __repr__(self) -> str:
        return (
            f"<DocumentCategory id={self.id} subject={self.subject_id} "
            f"type={self.type} name_cs={self.name_cs!r} order={self.order_index}>"
        )


# ---------------------------------------------------------------------------
# Document — documents
# ---------------------------------------------------------------------------

class Document(TimestampMixin, Base):
    """
    A shared file attached to a subject, optionally to an answer.

    Lifecycle:
        upload → object stored → text extracted (best effort) → row inserted
               → search index + activity feed updated in the background
        delete → object removed (logged on failure) → index + activity in the
               background → row deleted
    """

    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint("type IN ('lecture', 'seminar', 'other')", name="type"),
        Index("idx_documents_subject_created", "subject_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    subject_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
    )
    uploaded_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    answer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("answers.id", ondelete="SET NULL"),
        index=True,
        comment="Back-filled after the answer row exists",
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=DocumentType.OTHER.value)
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("document_categories.id", ondelete="SET NULL"),
        index=True,
    )

    storage_key: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        comment="Bucket object key: <uuid4><ext>",
    )
    original_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Filename as uploaded; used for Content-Disposition",
    )
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        comment="Client-declared MIME type, checked against the allow-list",
    )
    content_text: Mapped[str | None] = mapped_column(
        Text,
        comment="Extracted plain text; empty when extraction failed or was skipped",
    )

    uploader: Mapped[User] = relationship(foreign_keys=[uploaded_by])
    subject: Mapped[Subject] = relationship()
    category: Mapped[DocumentCategory | None] = relationship()

    def __repr__(self) -> str:
        return (
            f"<Document id={self.id} subject={self.subject_id} "
            f"name={self.original_name!r} type={self.type}>"
        )
