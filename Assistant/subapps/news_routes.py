from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from Assistant.auth import get_current_user_id
from Assistant.database import get_db
from Assistant.schemas.news import NewsFetchOut, NewsFetchRequest, NewsQueryIn, NewsQueryOut, NewsSearchOut
from Assistant.services.news_service import NewsService
from Assistant.services.search.base import SearchProvider
from Assistant.services.search.factory import get_search_provider


router = APIRouter(prefix="/api", tags=["news"])


def get_news_service(
    db: Session = Depends(get_db),
    search_provider: SearchProvider = Depends(get_search_provider),
) -> NewsService:
    return NewsService(db, search_provider)


# Searches news articles for a topic
@router.get("/search/news")
async def search_news(
    topic: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    svc: NewsService = Depends(get_news_service),
) -> NewsSearchOut:
    return await svc.search(topic=topic)


# Saves (or re-points) the news query of a dashboard window
@router.post("/news/queries", status_code=status.HTTP_201_CREATED)
def save_news_query(
    payload: NewsQueryIn,
    user_id: str = Depends(get_current_user_id),
    svc: NewsService = Depends(get_news_service),
) -> NewsQueryOut:
    return svc.save_query(owner_id=user_id, payload=payload)


# Gets the saved news query of a window, or {} when there is none
@router.get("/news/queries")
def get_news_query(
    window_id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    svc: NewsService = Depends(get_news_service),
) -> Union[NewsQueryOut, dict]:
    return svc.get_query(owner_id=user_id, window_id=window_id)


# Stops background refreshes for a window's news query
@router.delete("/news/queries")
def deactivate_news_query(
    window_id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    svc: NewsService = Depends(get_news_service),
) -> dict:
    return svc.deactivate_query(owner_id=user_id, window_id=window_id)


# Fetches news for a topic, optionally recording it in a conversation
@router.post("/news/fetch")
async def fetch_news_for_chat(
    payload: NewsFetchRequest,
    user_id: str = Depends(get_current_user_id),
    svc: NewsService = Depends(get_news_service),
) -> NewsFetchOut:
    return await svc.fetch_into_chat(owner_id=user_id, payload=payload)
