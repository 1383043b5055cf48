"""
Category Assignment Policy

Rules for the ordered document categories of a subject:

  1. Every (subject, type) pair owns exactly one "Unassigned" category
     ("Nepřiřazeno" / "Unassigned", order_index 999, is_protected=True).
     It is created on demand and by the startup seeding job.
  2. The Unassigned category can be neither renamed, re-ordered nor deleted.
  3. Creating a category rejects duplicate names within the (subject, type)
     and appends it after the last user category (max + 1, the Unassigned
     category excluded).
  4. Deleting a category first moves its documents to Unassigned, then
     removes the row, in one transaction.
  5. Reordering applies each item on its own; a failure part-way leaves the
     earlier items applied.
  6. A document is always placed in a category of its own subject and type;
     without an explicit choice it lands in Unassigned.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import and_, func, not_, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.catalog import Subject
from app.models.documents import (
    UNASSIGNED_NAME_CS,
    UNASSIGNED_NAME_EN,
    UNASSIGNED_ORDER_INDEX,
    Document,
    DocumentCategory,
    DocumentType,
)
from app.schemas.categories import (
    CategoryCreate,
    CategoryErrors,
    CategoryOrderItem,
    CategoryUpdate,
)
from app.schemas.documents import DocumentErrors

logger = logging.getLogger(__name__)


def _is_unassigned_clause():
    """SQL twin of DocumentCategory.is_unassigned."""
    return or_(
        DocumentCategory.is_protected.is_(True),
        DocumentCategory.name_cs == UNASSIGNED_NAME_CS,
        DocumentCategory.name_en == UNASSIGNED_NAME_EN,
    )


def parse_document_type(value: str | DocumentType | None) -> DocumentType:
    """Validate a type coming from a query string or form field (default: other)."""
    if value is None or value == "":
        return DocumentType.OTHER
    try:
        return DocumentType(value)
    except ValueError:
        raise CategoryErrors.invalid_type(str(value))


class CategoryPolicy:
    """
    One instance per request, bound to the request session.
    Methods that change data commit before returning.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Unassigned bucket
    # ------------------------------------------------------------------

    async def find_unassigned(
        self, subject_id: uuid.UUID, doc_type: DocumentType
    ) -> DocumentCategory | None:
        result = await self._db.execute(
            select(DocumentCategory)
            .where(
                DocumentCategory.subject_id == subject_id,
                DocumentCategory.type == doc_type.value,
                _is_unassigned_clause(),
            )
            .order_by(DocumentCategory.is_protected.desc(), DocumentCategory.created_at)
            .limit(1)
        )
        return result.scalars().first()

    async def ensure_unassigned(
        self,
        subject_id: uuid.UUID,
        doc_type: DocumentType,
        created_by: uuid.UUID | None = None,
    ) -> DocumentCategory:
        """
        Return the Unassigned category of (subject, type), creating it if
        missing. Flushes but does not commit.
        """
        existing = await self.find_unassigned(subject_id, doc_type)
        if existing is not None:
            return existing

        sentinel = DocumentCategory(
            subject_id=subject_id,
            type=doc_type.value,
            name_cs=UNASSIGNED_NAME_CS,
            name_en=UNASSIGNED_NAME_EN,
            order_index=UNASSIGNED_ORDER_INDEX,
            is_protected=True,
            created_by=created_by,
        )
        self._db.add(sentinel)
        await self._db.flush()
        logger.info(
            "Unassigned category created | subject=%s type=%s id=%s",
            subject_id, doc_type.value, sentinel.id,
        )
        return sentinel

    async def seed_subject(
        self, subject_id: uuid.UUID, created_by: uuid.UUID | None = None
    ) -> None:
        """Unassigned category for every type of one subject (no commit)."""
        for doc_type in DocumentType:
            await self.ensure_unassigned(subject_id, doc_type, created_by)

    # ------------------------------------------------------------------
    # Document placement
    # ------------------------------------------------------------------

    async def resolve_for_document(
        self,
        subject_id: uuid.UUID,
        doc_type: DocumentType,
        category_id: uuid.UUID | None,
        created_by: uuid.UUID | None = None,
    ) -> DocumentCategory:
        """
        Category a new or moved document should point at.
        An explicit category must belong to the same subject and type.
        """
        if category_id is None:
            return await self.ensure_unassigned(subject_id, doc_type, created_by)

        category = await self._db.get(DocumentCategory, category_id)
        if (
            category is None
            or category.subject_id != subject_id
            or category.type != doc_type.value
        ):
            raise DocumentErrors.invalid_category()
        return category

    async def assign_document(self, doc: Document, category_id: uuid.UUID) -> Document:
        """Move a document to another category of its subject; type follows the category."""
        category = await self._db.get(DocumentCategory, category_id)
        if category is None or category.subject_id != doc.subject_id:
            raise DocumentErrors.invalid_category()

        doc.category_id = category.id
        doc.type = category.type
        await self._db.commit()
        logger.info(
            "Document moved | doc=%s category=%s type=%s", doc.id, category.id, category.type
        )
        return doc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_categories(
        self, subject_id: uuid.UUID, doc_type: DocumentType | None = None
    ) -> list[DocumentCategory]:
        stmt = select(DocumentCategory).where(DocumentCategory.subject_id == subject_id)
        if doc_type is not None:
            stmt = stmt.where(DocumentCategory.type == doc_type.value)
        stmt = stmt.order_by(DocumentCategory.order_index, DocumentCategory.created_at)
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def _get(self, category_id: uuid.UUID) -> DocumentCategory:
        category = await self._db.get(DocumentCategory, category_id)
        if category is None:
            raise CategoryErrors.not_found()
        return category

    async def _name_taken(
        self,
        subject_id: uuid.UUID,
        doc_type: str,
        name_cs: str | None,
        name_en: str | None,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        names = []
        if name_cs:
            names.append(DocumentCategory.name_cs == name_cs)
        if name_en:
            names.append(DocumentCategory.name_en == name_en)
        if not names:
            return False

        stmt = select(DocumentCategory.id).where(
            DocumentCategory.subject_id == subject_id,
            DocumentCategory.type == doc_type,
            or_(*names),
        )
        if exclude_id is not None:
            stmt = stmt.where(DocumentCategory.id != exclude_id)
        result = await self._db.execute(stmt.limit(1))
        return result.first() is not None

    async def _next_order_index(self, subject_id: uuid.UUID, doc_type: str) -> int:
        result = await self._db.execute(
            select(func.coalesce(func.max(DocumentCategory.order_index), -1)).where(
                DocumentCategory.subject_id == subject_id,
                DocumentCategory.type == doc_type,
                not_(_is_unassigned_clause()),
            )
        )
        return int(result.scalar_one()) + 1

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create(
        self,
        subject_id: uuid.UUID,
        payload: CategoryCreate,
        created_by: uuid.UUID,
    ) -> DocumentCategory:
        if await self._db.get(Subject, subject_id) is None:
            raise DocumentErrors.subject_not_found()

        await self.ensure_unassigned(subject_id, payload.type, created_by)

        if await self._name_taken(subject_id, payload.type.value, payload.name_cs, payload.name_en):
            raise CategoryErrors.duplicate(payload.name_cs)

        category = DocumentCategory(
            subject_id=subject_id,
            type=payload.type.value,
            name_cs=payload.name_cs,
            name_en=payload.name_en,
            order_index=await self._next_order_index(subject_id, payload.type.value),
            created_by=created_by,
        )
        self._db.add(category)
        try:
            await self._db.commit()
        except IntegrityError:
            # Concurrent create of the same name slipped past the check
            await self._db.rollback()
            raise CategoryErrors.duplicate(payload.name_cs)

        logger.info(
            "Category created | subject=%s type=%s id=%s order=%d",
            subject_id, category.type, category.id, category.order_index,
        )
        return category

    async def update(self, category_id: uuid.UUID, payload: CategoryUpdate) -> DocumentCategory:
        category = await self._get(category_id)
        name_cs = payload.name_cs or category.name_cs

        if category.is_unassigned:
            # Any name field counts as a rename, even one equal to the current name
            if payload.name_cs is not None or payload.name_en is not None:
                raise CategoryErrors.protected("rename")
            if payload.order_index is not None and payload.order_index != UNASSIGNED_ORDER_INDEX:
                raise CategoryErrors.protected("reorder")

        renaming = (
            (payload.name_cs is not None and payload.name_cs != category.name_cs)
            or (payload.name_en is not None and payload.name_en != category.name_en)
        )
        if renaming and await self._name_taken(
            category.subject_id,
            category.type,
            payload.name_cs if payload.name_cs != category.name_cs else None,
            payload.name_en if payload.name_en != category.name_en else None,
            exclude_id=category.id,
        ):
            raise CategoryErrors.duplicate(name_cs)

        if payload.name_cs is not None:
            category.name_cs = payload.name_cs
        if payload.name_en is not None:
            category.name_en = payload.name_en
        if payload.order_index is not None:
            category.order_index = payload.order_index

        try:
            await self._db.commit()
        except IntegrityError:
            await self._db.rollback()
            raise CategoryErrors.duplicate(name_cs)
        return category

    async def delete(self, category_id: uuid.UUID) -> int:
        """Delete a category after moving its documents to Unassigned. Returns the moved count."""
        category = await self._get(category_id)
        if category.is_unassigned:
            raise CategoryErrors.protected("delete")

        sentinel = await self.ensure_unassigned(
            category.subject_id, DocumentType(category.type), category.created_by
        )

        result = await self._db.execute(
            update(Document)
            .where(Document.category_id == category.id)
            .values(category_id=sentinel.id)
        )
        moved = result.rowcount or 0

        await self._db.delete(category)
        await self._db.commit()

        logger.info(
            "Category deleted | id=%s subject=%s type=%s moved_documents=%d",
            category.id, category.subject_id, category.type, moved,
        )
        return moved

    async def reorder(self, items: list[CategoryOrderItem]) -> int:
        """
        Apply each new order_index on its own. Unknown ids and the Unassigned
        category are skipped. Returns how many categories changed.
        """
        updated = 0
        for item in items:
            result = await self._db.execute(
                update(DocumentCategory)
                .where(and_(DocumentCategory.id == item.id, not_(_is_unassigned_clause())))
                .values(order_index=item.order_index)
            )
            await self._db.commit()
            if result.rowcount:
                updated += 1
            else:
                logger.info("Reorder skipped | category=%s", item.id)
        return updated


# ---------------------------------------------------------------------------
# Seeding (idempotent, run at startup)
# ---------------------------------------------------------------------------

async def seed_unassigned_categories(db: AsyncSession) -> dict[str, int]:
    """
    Bring every subject in line with the Unassigned-category contract:
      - create the missing Unassigned categories (one per subject and type)
      - pin drifted ones back to order_index 999 and mark them protected
      - link uncategorised documents to the Unassigned category of their type

    Safe to run any number of times. Commits once at the end.
    """
    policy = CategoryPolicy(db)
    stats = {"created": 0, "repinned": 0, "linked": 0}

    subject_ids = (await db.execute(select(Subject.id))).scalars().all()
    for subject_id in subject_ids:
        for doc_type in DocumentType:
            existing = await policy.find_unassigned(subject_id, doc_type)
            if existing is None:
                sentinel = await policy.ensure_unassigned(subject_id, doc_type)
                stats["created"] += 1
            else:
                sentinel = existing
                if sentinel.order_index != UNASSIGNED_ORDER_INDEX or not sentinel.is_protected:
                    sentinel.order_index = UNASSIGNED_ORDER_INDEX
                    sentinel.is_protected = True
                    stats["repinned"] += 1

            result = await db.execute(
                update(Document)
                .where(
                    Document.subject_id == subject_id,
                    Document.type == doc_type.value,
                    Document.category_id.is_(None),
                )
                .values(category_id=sentinel.id)
            )
            stats["linked"] += result.rowcount or 0

    await db.commit()
    logger.info(
        "Category seeding done | subjects=%d created=%d repinned=%d linked=%d",
        len(subject_ids), stats["created"], stats["repinned"], stats["linked"],
    )
    return stats
