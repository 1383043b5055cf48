from app.search.base import (
    SearchIndexBase,
    SearchIndexError,
    SearchResponse,
    document_payload,
    subject_payload,
)
from app.search.factory import create_search_index

__all__ = [
    "SearchIndexBase", "SearchIndexError", "SearchResponse",
    "document_payload", "subject_payload",
    "create_search_index",
]
