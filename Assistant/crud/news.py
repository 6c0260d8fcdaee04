from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from Assistant.models.news_models import NewsQuery


# Get the saved query for (owner_id, window_id)
def get_news_query(db: Session, owner_id: str, window_id: str) -> Optional[NewsQuery]:
    stmt = select(NewsQuery).where(
        NewsQuery.owner_id == owner_id,
        NewsQuery.window_id == window_id,
    )
    return db.execute(stmt).scalar_one_or_none()


# Create or re-point the saved query of a window; an updated query is fetched again on the next refresh
def upsert_news_query(db: Session, owner_id: str, window_id: str, topic: str) -> NewsQuery:
    query = get_news_query(db, owner_id, window_id)
    if query is None:
        query = NewsQuery(owner_id=owner_id, window_id=window_id, topic=topic, is_active=True)
        # Nested transaction so a concurrent insert for the same window doesn't poison the caller's transaction.
        try:
            with db.begin_nested():
                db.add(query)
                db.flush()
        except IntegrityError:
            query = get_news_query(db, owner_id, window_id)
            if query is None:
                raise

    query.topic = topic
    query.is_active = True
    query.last_fetched = None
    db.flush()
    db.refresh(query)
    return query


# Mark a window's query inactive; returns False when there was nothing to change
def deactivate_news_query(db: Session, owner_id: str, window_id: str) -> bool:
    stmt = (
        update(NewsQuery)
        .where(
            NewsQuery.owner_id == owner_id,
            NewsQuery.window_id == window_id,
            NewsQuery.is_active.is_(True),
        )
        .values(is_active=False)
    )
    result = db.execute(stmt)
    return (result.rowcount or 0) > 0


# Active queries never fetched or last fetched before `cutoff`
def get_due_news_queries(db: Session, cutoff: datetime) -> list[NewsQuery]:
    stmt = (
        select(NewsQuery)
        .where(
            NewsQuery.is_active.is_(True),
            or_(NewsQuery.last_fetched.is_(None), NewsQuery.last_fetched < cutoff),
        )
        .order_by(NewsQuery.id)
    )
    return list(db.execute(stmt).scalars().all())


# Store the outcome of a refresh on the query row
def record_news_fetch(db: Session, query: NewsQuery, results: list[dict], fetched_at: datetime) -> NewsQuery:
    query.last_results = results
    query.last_fetched = fetched_at
    db.flush()
    return query
