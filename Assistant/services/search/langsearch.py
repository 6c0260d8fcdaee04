from __future__ import annotations

import logging
from typing import Any

from Assistant.services.search.base import SearchProvider, SearchResult, first_str

logger = logging.getLogger(__name__)

LANGSEARCH_URL = "https://api.langsearch.com/v1/web-search"


# LangSearch web search. The API nests hits under data.webPages.value; older
# deployments returned a flat results list, which is still accepted.
class LangSearchProvider(SearchProvider):
    name = "langsearch"
    display_name = "LangSearch Result"
    api_key_env = "LANGSEARCH_API_KEY"

    def __init__(self, *args, freshness: str = "week", **kwargs):
        super().__init__(*args, **kwargs)
        self.freshness = freshness

    def _fetch(self, query: str, count: int) -> Any:
        return self._send(
            "POST",
            LANGSEARCH_URL,
            json={"query": query, "freshness": self.freshness, "summary": True, "count": count},
            headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
        )

    def _parse(self, payload: Any) -> list[SearchResult]:
        items = _extract_items(payload)
        if items is None:
            logger.warning("search.unexpected_shape: provider=%s", self.name)
            return []

        return [
            SearchResult(
                title=first_str(item, "name", "title") or "No Title",
                description=first_str(item, "snippet", "summary", "description") or "No Description",
                url=first_str(item, "url", "link") or "",
                source=first_str(item, "siteName", "source") or self.display_name,
                published_at=first_str(item, "datePublished", "published_date", "date"),
            )
            for item in items
            if isinstance(item, dict)
        ]


def _extract_items(payload: Any):
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if isinstance(data, dict):
        pages = data.get("webPages")
        if isinstance(pages, dict) and isinstance(pages.get("value"), list):
            return pages["value"]
    if isinstance(payload.get("results"), list):
        return payload["results"]
    return None
