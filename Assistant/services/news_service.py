from __future__ import annotations

import logging
from typing import Optional, Union

from fastapi import HTTPException
from sqlalchemy.orm import Session

from Assistant.crud.chat import create_message, get_conversation
from Assistant.crud.news import deactivate_news_query, get_news_query, upsert_news_query
from Assistant.models.chat_models import Sender
from Assistant.models.news_models import NewsQuery
from Assistant.schemas.news import NewsFetchOut, NewsFetchRequest, NewsQueryIn, NewsQueryOut, NewsSearchOut
from Assistant.services.errors import ConversationNotFoundError, SearchServiceError
from Assistant.services.search.base import SearchProvider, SearchResult, search_async

logger = logging.getLogger(__name__)

DEFAULT_NEWS_COUNT = 5


def news_query_out(q: NewsQuery) -> NewsQueryOut:
    return NewsQueryOut(
        id=q.id,
        topic=q.topic,
        window_id=q.window_id,
        is_active=bool(q.is_active),
        last_fetched=q.last_fetched.isoformat() if q.last_fetched else None,
        last_results=q.last_results or None,
    )


# Markdown reply listing fetched articles, or a "nothing found" reply
def format_news_reply(topic: str, articles: list[SearchResult]) -> str:
    if not articles:
        return (
            f"I couldn't find any recent news articles about \"{topic}\". "
            "Please try a different search term or check back later."
        )
    lines = [f"Here are the latest news articles about \"{topic}\":\n"]
    for i, article in enumerate(articles, start=1):
        lines.append(f"{i}. **{article.title}**\n   {article.description}\n   Source: [{article.source}]({article.url})\n")
    return "\n".join(lines)


def _require(value: Optional[str], name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise HTTPException(status_code=400, detail=f"{name} is required")
    return value.strip()


# News search, per-window saved queries and fetching news into a conversation
class NewsService:
    def __init__(self, db: Session, search_provider: SearchProvider):
        self.db = db
        self.search_provider = search_provider

    async def search(self, *, topic: Optional[str], count: int = DEFAULT_NEWS_COUNT) -> NewsSearchOut:
        topic = _require(topic, "topic")
        articles = await search_async(self.search_provider, topic, count)
        return NewsSearchOut(articles=[a.to_dict() for a in articles], total_results=len(articles))

    def save_query(self, *, owner_id: str, payload: NewsQueryIn) -> NewsQueryOut:
        query = upsert_news_query(self.db, owner_id, payload.window_id, payload.topic)
        self.db.commit()
        self.db.refresh(query)
        logger.info("news.query.saved: id=%s window=%s", query.id, query.window_id)
        return news_query_out(query)

    def get_query(self, *, owner_id: str, window_id: Optional[str]) -> Union[NewsQueryOut, dict]:
        window_id = _require(window_id, "window_id")
        query = get_news_query(self.db, owner_id, window_id)
        return news_query_out(query) if query is not None else {}

    def deactivate_query(self, *, owner_id: str, window_id: Optional[str]) -> dict:
        window_id = _require(window_id, "window_id")
        changed = deactivate_news_query(self.db, owner_id, window_id)
        if not changed:
            self.db.rollback()
            raise HTTPException(status_code=404, detail="News query not found")
        self.db.commit()
        return {"message": "News query deactivated"}

    # Searches news for a topic; with a conversation, records the request and the reply as messages
    async def fetch_into_chat(self, *, owner_id: str, payload: NewsFetchRequest) -> NewsFetchOut:
        topic = _require(payload.topic, "topic")
        conversation_id = payload.conversation_id
        if conversation_id is not None:
            if get_conversation(self.db, conversation_id, owner_id) is None:
                raise ConversationNotFoundError(conversation_id)
            create_message(self.db, conversation_id, Sender.USER, f"Find news about: {topic}")
            self.db.commit()

        try:
            articles = await search_async(self.search_provider, topic, DEFAULT_NEWS_COUNT)
        except SearchServiceError as e:
            logger.warning("news.fetch.failed: kind=%s", e.kind.value)
            error_text = (
                f"Sorry, I encountered an error while searching for news about \"{topic}\". "
                "Please try again later."
            )
            if conversation_id is not None:
                create_message(self.db, conversation_id, Sender.AI, error_text)
                self.db.commit()
            raise HTTPException(status_code=502, detail=error_text)

        reply = format_news_reply(topic, articles)
        article_dicts = [a.to_dict() for a in articles]
        if conversation_id is not None:
            create_message(self.db, conversation_id, Sender.AI, reply, search_results=article_dicts or None)
            self.db.commit()
        logger.info("news.fetch.done: conv=%s articles=%d", conversation_id, len(articles))
        return NewsFetchOut(message=reply, articles=article_dicts)
