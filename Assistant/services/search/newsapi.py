from __future__ import annotations

import logging
from typing import Any

from Assistant.services.search.base import SearchProvider, SearchResult, first_str

logger = logging.getLogger(__name__)

NEWSAPI_URL = "https://newsapi.org/v2/everything"


# NewsAPI.org article search, newest first
class NewsApiProvider(SearchProvider):
    name = "newsapi"
    display_name = "NewsAPI"
    api_key_env = "NEWSAPI_KEY"

    def __init__(self, *args, language: str = "en", **kwargs):
        super().__init__(*args, **kwargs)
        self.language = language

    def _fetch(self, query: str, count: int) -> Any:
        return self._send(
            "GET",
            NEWSAPI_URL,
            params={"q": query, "pageSize": count, "sortBy": "publishedAt", "language": self.language},
            headers={"X-Api-Key": self.api_key},
        )

    def _parse(self, payload: Any) -> list[SearchResult]:
        articles = payload.get("articles") if isinstance(payload, dict) else None
        if not isinstance(articles, list):
            logger.warning("search.unexpected_shape: provider=%s", self.name)
            return []

        results = []
        for item in articles:
            if not isinstance(item, dict):
                continue
            source = item.get("source")
            source_name = first_str(source, "name") if isinstance(source, dict) else None
            results.append(
                SearchResult(
                    title=first_str(item, "title") or "No Title",
                    description=first_str(item, "description") or "No Description",
                    url=first_str(item, "url") or "",
                    source=source_name or self.display_name,
                    published_at=first_str(item, "publishedAt"),
                )
            )
        return results
