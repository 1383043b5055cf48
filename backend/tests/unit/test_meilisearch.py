"""
Unit Tests — MeilisearchIndex
══════════════════════════════
Meilisearch is replaced by httpx.MockTransport; requests are recorded and
answered from a small routing function.

Coverage:
  ✅ Upsert / delete hit the right index and path
  ✅ Search sends q, limit and the subject/semester filter
  ✅ Response mapping (hits, estimatedTotalHits, processingTimeMs)
  ✅ Provisioning creates a missing index, then patches its settings
  ✅ Errors surface as SearchIndexError
  ✅ API key sent as Bearer token
"""

from __future__ import annotations

import json
import uuid

import httpx
import pytest

from app.core.config import settings
from app.search.base import SearchIndexError, document_payload
from app.search.meilisearch_index import MeilisearchIndex


class _Recorder:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, responses: dict[tuple[str, str], httpx.Response] | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self.responses = responses or {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        canned = self.responses.get((request.method, request.url.path))
        if canned is not None:
            return canned
        return httpx.Response(202, json={"taskUid": 1})


def _index(recorder: _Recorder, **overrides) -> MeilisearchIndex:
    cfg = settings.model_copy(update={"meili_url": "http://meili.test:7700", **overrides})
    return MeilisearchIndex(config=cfg, transport=httpx.MockTransport(recorder))


@pytest.mark.unit
@pytest.mark.search
class TestDocumentsIndex:

    async def test_index_document(self):
        recorder = _Recorder()
        index = _index(recorder)
        await index.index_document({"id": "d1", "original_name": "notes.pdf"})

        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/indexes/documents/documents"
        assert request.url.params["primaryKey"] == "id"
        assert json.loads(request.content) == [{"id": "d1", "original_name": "notes.pdf"}]

    async def test_delete_document(self):
        recorder = _Recorder()
        doc_id = uuid.uuid4()
        await _index(recorder).delete_document(doc_id)

        request = recorder.requests[0]
        assert request.method == "DELETE"
        assert request.url.path == f"/indexes/documents/documents/{doc_id}"

    async def test_search_with_subject_filter(self):
        subject_id = uuid.uuid4()
        recorder = _Recorder({
            ("POST", "/indexes/documents/search"): httpx.Response(
                200,
                json={
                    "query": "graf",
                    "hits": [{"id": "d1", "original_name": "grafy.pdf"}],
                    "estimatedTotalHits": 1,
                    "processingTimeMs": 3,
                },
            ),
        })

        result = await _index(recorder).search_documents("graf", subject_id=subject_id)

        body = json.loads(recorder.requests[0].content)
        assert body == {"q": "graf", "limit": 20, "filter": f'subject_id = "{subject_id}"'}
        assert result.query == "graf"
        assert result.hits[0]["id"] == "d1"
        assert result.estimated_total == 1
        assert result.processing_ms == 3

    async def test_search_failure(self):
        recorder = _Recorder({
            ("POST", "/indexes/documents/search"): httpx.Response(503, text="unavailable"),
        })
        with pytest.raises(SearchIndexError):
            await _index(recorder).search_documents("x")

    async def test_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        cfg = settings.model_copy(update={"meili_url": "http://meili.test:7700"})
        index = MeilisearchIndex(config=cfg, transport=httpx.MockTransport(handler))
        with pytest.raises(SearchIndexError):
            await index.index_document({"id": "d1"})


@pytest.mark.unit
@pytest.mark.search
class TestSubjectsIndex:

    async def test_search_subjects_with_semester_filter(self):
        semester_id = uuid.uuid4()
        recorder = _Recorder({
            ("POST", "/indexes/subjects/search"): httpx.Response(200, json={"hits": []}),
        })

        result = await _index(recorder).search_subjects("prog", semester_id=semester_id)

        body = json.loads(recorder.requests[0].content)
        assert body["limit"] == 100
        assert body["filter"] == f'semester_id = "{semester_id}"'
        assert result.hits == []
        assert result.query == "prog"

    async def test_index_and_delete_subject(self):
        recorder = _Recorder()
        index = _index(recorder)
        await index.index_subject({"id": "s1", "code": "KIV/PPA1"})
        await index.delete_subject("s1")

        assert [(r.method, r.url.path) for r in recorder.requests] == [
            ("POST", "/indexes/subjects/documents"),
            ("DELETE", "/indexes/subjects/documents/s1"),
        ]


@pytest.mark.unit
@pytest.mark.search
class TestProvisioning:

    async def test_missing_index_is_created(self):
        recorder = _Recorder({
            ("GET", "/indexes/documents"): httpx.Response(404, json={"code": "index_not_found"}),
            ("GET", "/indexes/subjects"): httpx.Response(200, json={"uid": "subjects"}),
        })

        await _index(recorder).ensure_indexes()

        calls = [(r.method, r.url.path) for r in recorder.requests]
        assert calls == [
            ("GET", "/indexes/documents"),
            ("POST", "/indexes"),
            ("PATCH", "/indexes/documents/settings"),
            ("GET", "/indexes/subjects"),
            ("PATCH", "/indexes/subjects/settings"),
        ]
        create_body = json.loads(recorder.requests[1].content)
        assert create_body == {"uid": "documents", "primaryKey": "id"}
        doc_settings = json.loads(recorder.requests[2].content)
        assert "subject_id" in doc_settings["filterableAttributes"]

    async def test_api_key_sent_as_bearer(self):
        recorder = _Recorder()
        await _index(recorder, meili_api_key="master-key").delete_subject("s1")
        assert recorder.requests[0].headers["authorization"] == "Bearer master-key"


@pytest.mark.unit
@pytest.mark.search
class TestPayloads:

    def test_document_payload_flattens_ids(self):
        from datetime import datetime, timezone

        from app.models.documents import Document

        doc = Document(
            id=uuid.uuid4(),
            subject_id=uuid.uuid4(),
            uploaded_by=uuid.uuid4(),
            type="lecture",
            category_id=None,
            storage_key="k.pdf",
            original_name="notes.pdf",
            file_size=12,
            mime_type="application/pdf",
            content_text=None,
            created_at=datetime(2024, 10, 1, tzinfo=timezone.utc),
        )
        payload = document_payload(doc)

        assert payload["id"] == str(doc.id)
        assert payload["subject_id"] == str(doc.subject_id)
        assert payload["category_id"] is None
        assert payload["content_text"] == ""
        assert payload["created_at"].startswith("2024-10-01")
        assert "storage_key" not in payload


@pytest.mark.unit
@pytest.mark.search
def test_factory_builds_meilisearch():
    from app.search.factory import create_search_index

    index = create_search_index(settings)
    assert isinstance(index, MeilisearchIndex)
