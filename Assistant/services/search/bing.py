from __future__ import annotations

import logging
from typing import Any

from Assistant.services.search.base import SearchProvider, SearchResult, first_str

logger = logging.getLogger(__name__)

BING_HOST = "bing-search-apis.p.rapidapi.com"
BING_URL = f"https://{BING_HOST}/api/rapid/web_search"


# Bing web search through RapidAPI; results arrive under data.items
class BingRapidApiProvider(SearchProvider):
    name = "bing"
    display_name = "Bing Search Result"
    api_key_env = "RAPIDAPI_KEY"

    def _fetch(self, query: str, count: int) -> Any:
        return self._send(
            "GET",
            BING_URL,
            params={"keyword": query, "page": "0", "size": str(count)},
            headers={"x-rapidapi-key": self.api_key, "x-rapidapi-host": BING_HOST},
        )

    def _parse(self, payload: Any) -> list[SearchResult]:
        data = payload.get("data") if isinstance(payload, dict) else None
        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            logger.warning("search.unexpected_shape: provider=%s", self.name)
            return []

        return [
            SearchResult(
                title=first_str(item, "title") or "No Title",
                description=first_str(item, "description") or "No Description",
                url=first_str(item, "link") or "",
                source=self.display_name,
                published_at=None,
            )
            for item in items
            if isinstance(item, dict)
        ]
