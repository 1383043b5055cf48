"""
Integration Tests — Operations, authentication and search endpoints
════════════════════════════════════════════════════════════════════
Coverage:
  ✅ /health liveness, X-Request-ID echoed
  ✅ /health/ready answers 503 when the database is unreachable
  ✅ Real JWT verification: missing / expired / valid bearer token
  ✅ Error envelope on unknown routes
  ✅ /search and /search/subjects delegate to the index, SEARCH_FAILED on errors
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, patch

import pytest

from app.search.base import SearchIndexError, SearchResponse


@pytest.fixture
def real_auth(app_with_overrides):
    """Drop the auth override so requests go through JWT verification."""
    from app.auth.token import get_current_user

    app_with_overrides.dependency_overrides.pop(get_current_user, None)


# ─────────────────────────────────────────────────────────────────────────────
# Operations
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.integration
@pytest.mark.health
class TestOperations:

    async def test_liveness(self, async_client):
        resp = await async_client.get("/health", headers={"X-Request-ID": "req-123"})

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "service": "course-portal-api"}
        assert resp.headers["x-request-id"] == "req-123"

    async def test_request_id_generated(self, async_client):
        resp = await async_client.get("/health")
        uuid.UUID(resp.headers["x-request-id"])

    async def test_readiness_db_down(self, async_client):
        with patch(
            "app.main.check_db_health",
            AsyncMock(return_value={"status": "error", "detail": "connection refused"}),
        ):
            resp = await async_client.get("/health/ready")

        assert resp.status_code == 503
        assert resp.json()["status"] == "not_ready"

    async def test_readiness_ok(self, async_client):
        with patch("app.main.check_db_health", AsyncMock(return_value={"status": "ok"})):
            resp = await async_client.get("/ready")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ready", "database": {"status": "ok"}}

    async def test_unknown_route_envelope(self, async_client):
        resp = await async_client.get("/api/v1/nope")
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": {"code": "NOT_FOUND", "message": "Not Found"}}


# ─────────────────────────────────────────────────────────────────────────────
# Authentication through the real dependency
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.integration
@pytest.mark.auth
class TestAuthentication:

    async def test_missing_token(self, async_client, real_auth):
        resp = await async_client.get("/api/v1/semesters")

        assert resp.status_code == 401
        assert resp.json() == {
            "success": False,
            "error": {"code": "UNAUTHORIZED", "message": "Authorization header required"},
        }
        assert resp.headers["www-authenticate"] == "Bearer"

    async def test_expired_token(self, async_client, real_auth, make_token):
        resp = await async_client.get(
            "/api/v1/semesters",
            headers={"Authorization": f"Bearer {make_token(expired=True)}"},
        )
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Token has expired"

    async def test_valid_token(self, async_client, real_auth, make_token, users, student_id):
        resp = await async_client.get(
            "/api/v1/auth/me",
            headers={"Authorization": f"Bearer {make_token()}"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["id"] == str(student_id)

    async def test_student_token_on_admin_route(self, async_client, real_auth, make_token):
        resp = await async_client.delete(
            f"/api/v1/admin/categories/{uuid.uuid4()}",
            headers={"Authorization": f"Bearer {make_token(role='student')}"},
        )
        assert resp.status_code == 403


# ─────────────────────────────────────────────────────────────────────────────
# Search
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.integration
@pytest.mark.search
class TestSearchApi:

    async def test_document_search(self, async_client, mock_search):
        subject_id = uuid.uuid4()
        mock_search.search_documents.return_value = SearchResponse(
            query="graf",
            hits=[{"id": "d1", "original_name": "grafy.pdf"}],
            estimated_total=1,
            processing_ms=2,
        )

        resp = await async_client.get("/api/v1/search", params={"q": "graf", "subject_id": str(subject_id)})

        assert resp.status_code == 200
        assert resp.json()["data"] == {
            "query": "graf",
            "hits": [{"id": "d1", "original_name": "grafy.pdf"}],
            "estimated_total": 1,
            "processing_ms": 2,
        }
        mock_search.search_documents.assert_awaited_once_with("graf", subject_id=subject_id, limit=20)

    async def test_subject_search(self, async_client, mock_search):
        resp = await async_client.get("/api/v1/search/subjects", params={"q": "prog"})

        assert resp.status_code == 200
        mock_search.search_subjects.assert_awaited_once_with("prog", semester_id=None, limit=100)

    async def test_search_failure(self, async_client, mock_search):
        mock_search.search_documents.side_effect = SearchIndexError("meilisearch down")

        resp = await async_client.get("/api/v1/search", params={"q": "x"})

        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "SEARCH_FAILED"
