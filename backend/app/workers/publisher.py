"""
Event publisher — the background side effects of catalog changes.

Thin layer over BackgroundDispatcher, injected into the ingestion and
removal services so tests can assert on calls without running tasks.

  document_uploaded → search upsert  +  "document_uploaded" activity
  document_deleted  → search delete  +  "document_deleted" activity
  subject_changed   → subject upsert in the search index
  subject_deleted   → subject delete from the search index

Payloads are built synchronously, while the ORM row is still in a known
state; the spawned coroutines only touch plain data.
"""

from __future__ import annotations

import uuid

from app.models.activity import ActivityType
from app.models.catalog import Subject
from app.models.documents import Document
from app.search.base import SearchIndexBase, document_payload, subject_payload
from app.services.activity import ActivityService
from app.workers.background import BackgroundDispatcher


class EventPublisher:

    def __init__(
        self,
        dispatcher: BackgroundDispatcher,
        search: SearchIndexBase,
        activity: ActivityService,
    ) -> None:
        self._dispatcher = dispatcher
        self._search = search
        self._activity = activity

    def document_uploaded(self, doc: Document, user_id: uuid.UUID) -> None:
        self._dispatcher.spawn(
            self._search.index_document(document_payload(doc)),
            name=f"search-index-document:{doc.id}",
        )
        self._dispatcher.spawn(
            self._activity.record(
                user_id=user_id,
                activity_type=ActivityType.DOCUMENT_UPLOADED,
                subject_id=doc.subject_id,
                document_id=doc.id,
                details={"original_name": doc.original_name, "mime_type": doc.mime_type},
            ),
            name=f"activity-uploaded:{doc.id}",
        )

    def document_deleted(
        self,
        doc: Document,
        user_id: uuid.UUID,
        *,
        record_activity: bool = True,
    ) -> None:
        self._dispatcher.spawn(
            self._search.delete_document(doc.id),
            name=f"search-delete-document:{doc.id}",
        )
        if not record_activity:
            return
        self._dispatcher.spawn(
            self._activity.record(
                user_id=user_id,
                activity_type=ActivityType.DOCUMENT_DELETED,
                subject_id=doc.subject_id,
                document_id=doc.id,
                details={"original_name": doc.original_name},
            ),
            name=f"activity-deleted:{doc.id}",
        )

    def subject_changed(self, subject: Subject) -> None:
        self._dispatcher.spawn(
            self._search.index_subject(subject_payload(subject)),
            name=f"search-index-subject:{subject.id}",
        )

    def subject_deleted(self, subject_id: uuid.UUID) -> None:
        self._dispatcher.spawn(
            self._search.delete_subject(subject_id),
            name=f"search-delete-subject:{subject_id}",
        )
