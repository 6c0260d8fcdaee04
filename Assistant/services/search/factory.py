import logging
import os
from typing import Dict, Optional, Type

from Assistant.services.search.base import SearchProvider
from Assistant.services.search.bing import BingRapidApiProvider
from Assistant.services.search.langsearch import LangSearchProvider
from Assistant.services.search.newsapi import NewsApiProvider

logger = logging.getLogger(__name__)

_PROVIDERS: Dict[str, Type[SearchProvider]] = {
    "bing": BingRapidApiProvider,
    "langsearch": LangSearchProvider,
    "newsapi": NewsApiProvider,
}


# Build the provider named by SEARCH_PROVIDER (or `name`), reading its API key from env
def build_search_provider(name: Optional[str] = None) -> SearchProvider:
    provider_l = (name or os.getenv("SEARCH_PROVIDER") or "bing").strip().lower()
    cls = _PROVIDERS.get(provider_l)
    if cls is None:
        raise ValueError(f"Unsupported search provider: {provider_l}")

    api_key = os.getenv(cls.api_key_env)
    if not api_key:
        logger.warning("%s is not set; %s searches will fail until it is configured.", cls.api_key_env, provider_l)
    return cls(api_key)


_singleton: Optional[SearchProvider] = None


def get_search_provider() -> SearchProvider:
    global _singleton
    if _singleton is None:
        _singleton = build_search_provider()
    return _singleton
