"""
Search Index Factory

Selects the search backend from config. Only Meilisearch exists today;
callers import create_search_index() and never the concrete class.
"""

from __future__ import annotations

from app.core.config import Settings, settings as default_settings
from app.search.base import SearchIndexBase


def create_search_index(config: Settings | None = None) -> SearchIndexBase:
    """Build the process-wide search client. Called once from the app lifespan."""
    from app.search.meilisearch_index import MeilisearchIndex

    return MeilisearchIndex(config or default_settings)
