from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from Assistant.schemas.chat import SearchResultOut


# Response payload for a news search
class NewsSearchOut(BaseModel):
    articles: List[SearchResultOut]
    total_results: int


# Request body for saving a window's news query
class NewsQueryIn(BaseModel):
    model_config = ConfigDict(extra="ignore")
    topic: str = Field(min_length=1, max_length=255)
    window_id: str = Field(min_length=1, max_length=128)

    @field_validator("topic", "window_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class NewsQueryOut(BaseModel):
    id: int
    topic: str
    window_id: str
    is_active: bool
    last_fetched: Optional[str] = None
    last_results: Optional[List[SearchResultOut]] = None


# Request body for fetching news into a conversation
class NewsFetchRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")
    topic: str
    conversation_id: Optional[int] = None


class NewsFetchOut(BaseModel):
    message: str
    articles: List[SearchResultOut]
