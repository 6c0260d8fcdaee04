from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from Assistant.celery import NEWS_REFRESH_MINUTES, celery
from Assistant.crud.news import get_due_news_queries, record_news_fetch
from Assistant.database import SessionLocal
from Assistant.services.errors import SearchServiceError
from Assistant.services.news_service import DEFAULT_NEWS_COUNT
from Assistant.services.search.base import SearchProvider
from Assistant.services.search.factory import build_search_provider


logger = logging.getLogger(__name__)


# Re-run every due saved query; one failing query never stops the others
def refresh_due_queries(
    session: Session,
    provider: SearchProvider,
    *,
    interval: timedelta,
    now: Optional[datetime] = None,
) -> dict[str, int]:
    now = now or datetime.now(timezone.utc)
    due = get_due_news_queries(session, now - interval)
    refreshed = failed = 0

    for query in due:
        query_id, topic = query.id, query.topic
        try:
            articles = provider.search(topic, DEFAULT_NEWS_COUNT)
            record_news_fetch(session, query, [a.to_dict() for a in articles], now)
            session.commit()
        except SearchServiceError as e:
            logger.warning("news.refresh.failed: id=%s kind=%s", query_id, e.kind.value)
            session.rollback()
            failed += 1
            continue
        except Exception:
            logger.exception("news.refresh.failed: id=%s", query_id)
            session.rollback()
            failed += 1
            continue
        refreshed += 1

    logger.info("news.refresh.done: due=%d refreshed=%d failed=%d", len(due), refreshed, failed)
    return {"due": len(due), "refreshed": refreshed, "failed": failed}


@celery.task(name="refresh_news_queries")
def refresh_news_queries() -> dict[str, int]:
    provider = build_search_provider()
    with SessionLocal() as session:
        return refresh_due_queries(session, provider, interval=timedelta(minutes=NEWS_REFRESH_MINUTES))
