"""
Meilisearch implementation of SearchIndexBase, spoken over the REST API.

Indexes:
  documents   primary key "id"; filterable subject_id, mime_type, type;
              sortable created_at
  subjects    primary key "id"; filterable semester_id, code

Meilisearch applies writes asynchronously (it answers 202 with a task uid);
this client does not wait for the task to finish.
"""

from __future__ import annotations

import logging
from uuid import UUID

import httpx

from app.core.config import Settings, settings as default_settings
from app.search.base import SearchIndexBase, SearchIndexError, SearchResponse

logger = logging.getLogger(__name__)

_DOCUMENTS_SETTINGS = {
    "filterableAttributes": ["subject_id", "mime_type", "type"],
    "sortableAttributes":   ["created_at"],
    "searchableAttributes": ["original_name", "content_text"],
}

_SUBJECTS_SETTINGS = {
    "filterableAttributes": ["semester_id", "code"],
    "searchableAttributes": ["code", "name_cs", "name_en", "description_cs", "description_en"],
}


def _eq_filter(attribute: str, value: UUID | str) -> str:
    return f'{attribute} = "{value}"'


class MeilisearchIndex(SearchIndexBase):

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        cfg = config or default_settings
        headers = {"Content-Type": "application/json"}
        if cfg.meili_api_key:
            headers["Authorization"] = f"Bearer {cfg.meili_api_key}"

        self._documents_uid = cfg.meili_documents_index
        self._subjects_uid = cfg.meili_subjects_index
        self._client = httpx.AsyncClient(
            base_url=cfg.meili_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(cfg.meili_timeout_seconds),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SearchIndexError(
                f"meilisearch {method} {path} → {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise SearchIndexError(f"meilisearch {method} {path} failed: {exc}") from exc
        return resp

    async def _ensure_index(self, uid: str, settings_body: dict) -> None:
        try:
            resp = await self._client.get(f"/indexes/{uid}")
        except httpx.HTTPError as exc:
            raise SearchIndexError(f"meilisearch GET /indexes/{uid} failed: {exc}") from exc

        if resp.status_code == 404:
            await self._request("POST", "/indexes", json={"uid": uid, "primaryKey": "id"})
            logger.info("Search index created | index=%s", uid)
        elif resp.is_error:
            raise SearchIndexError(f"meilisearch GET /indexes/{uid} → {resp.status_code}")

        await self._request("PATCH", f"/indexes/{uid}/settings", json=settings_body)

    async def _search(self, uid: str, body: dict) -> SearchResponse:
        resp = await self._request("POST", f"/indexes/{uid}/search", json=body)
        data = resp.json()
        return SearchResponse(
            query=data.get("query", body["q"]),
            hits=data.get("hits", []),
            estimated_total=data.get("estimatedTotalHits", len(data.get("hits", []))),
            processing_ms=data.get("processingTimeMs", 0),
        )

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    async def ensure_indexes(self) -> None:
        await self._ensure_index(self._documents_uid, _DOCUMENTS_SETTINGS)
        await self._ensure_index(self._subjects_uid, _SUBJECTS_SETTINGS)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def index_document(self, payload: dict) -> None:
        await self._request(
            "POST",
            f"/indexes/{self._documents_uid}/documents",
            params={"primaryKey": "id"},
            json=[payload],
        )
        logger.debug("Search upsert | index=%s id=%s", self._documents_uid, payload["id"])

    async def delete_document(self, document_id: UUID | str) -> None:
        await self._request("DELETE", f"/indexes/{self._documents_uid}/documents/{document_id}")
        logger.debug("Search delete | index=%s id=%s", self._documents_uid, document_id)

    async def search_documents(
        self,
        query: str,
        subject_id: UUID | None = None,
        limit: int = 20,
    ) -> SearchResponse:
        body: dict = {"q": query, "limit": limit}
        if subject_id is not None:
            body["filter"] = _eq_filter("subject_id", subject_id)
        return await self._search(self._documents_uid, body)

    # ------------------------------------------------------------------
    # Subjects
    # ------------------------------------------------------------------

    async def index_subject(self, payload: dict) -> None:
        await self._request(
            "POST",
            f"/indexes/{self._subjects_uid}/documents",
            params={"primaryKey": "id"},
            json=[payload],
        )

    async def delete_subject(self, subject_id: UUID | str) -> None:
        await self._request("DELETE", f"/indexes/{self._subjects_uid}/documents/{subject_id}")

    async def search_subjects(
        self,
        query: str,
        semester_id: UUID | None = None,
        limit: int = 100,
    ) -> SearchResponse:
        body: dict = {"q": query, "limit": limit}
        if semester_id is not None:
            body["filter"] = _eq_filter("semester_id", semester_id)
        return await self._search(self._subjects_uid, body)
