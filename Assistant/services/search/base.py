from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, Optional

import requests

from Assistant.services.errors import ErrorKind, SearchServiceError, describe_status, network_error, unknown_error

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


# Normalized search hit; the only shape callers outside a provider module ever see
@dataclass(frozen=True)
class SearchResult:
    title: str
    description: str
    url: str
    source: str
    published_at: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class SearchProvider:
    """Base class for web/news search integrations.

    Subclasses implement ``_fetch`` (one HTTP round trip) and ``_parse``
    (provider payload to ``SearchResult`` records). ``search`` handles key
    checks, result capping and logging the same way for every provider.
    """

    name = "search"
    display_name = "Search"
    api_key_env = ""

    def __init__(self, api_key: Optional[str], *, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    def search(self, query: str, count: int = 5) -> list[SearchResult]:
        if not self.api_key:
            raise SearchServiceError(ErrorKind.AUTH, f"{self.api_key_env} is not configured on the server.")
        count = max(1, int(count))

        logger.info("search.request: provider=%s count=%d query_chars=%d", self.name, count, len(query))
        payload = self._fetch(query, count)
        results = self._parse(payload)[:count]
        logger.info("search.response: provider=%s results=%d", self.name, len(results))
        return results

    def _fetch(self, query: str, count: int) -> Any:
        raise NotImplementedError

    def _parse(self, payload: Any) -> list[SearchResult]:
        raise NotImplementedError

    # One HTTP call with provider failures translated into SearchServiceError
    def _send(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = requests.request(method, url, timeout=self.timeout_seconds, **kwargs)
            response.raise_for_status()
        except requests.Timeout:
            logger.warning("search.timeout: provider=%s", self.name)
            raise network_error(SearchServiceError, timed_out=True)
        except requests.ConnectionError:
            logger.warning("search.connection_error: provider=%s", self.name)
            raise network_error(SearchServiceError)
        except requests.HTTPError as e:
            if e.response is None:
                logger.warning("search.http_error: provider=%s no response", self.name)
                raise network_error(SearchServiceError)
            status = e.response.status_code
            logger.error("search.http_error: provider=%s status=%s", self.name, status)
            kind, message = describe_status(SearchServiceError.service, status)
            raise SearchServiceError(kind, message, status_code=status)
        except requests.RequestException:
            logger.exception("search.error: provider=%s", self.name)
            raise unknown_error(SearchServiceError)

        try:
            return response.json()
        except ValueError:
            logger.error("search.malformed_response: provider=%s", self.name)
            raise SearchServiceError(ErrorKind.UNKNOWN, "Search service returned an unreadable response.")


def first_str(item: dict, *keys: str) -> Optional[str]:
    for key in keys:
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


# Run a blocking provider call in the default executor so the event loop stays free
async def search_async(provider: SearchProvider, query: str, count: int) -> list[SearchResult]:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, provider.search, query, count)
