from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# Request body for creating a conversation
class ConversationCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")
    title: Optional[str] = Field(default=None, max_length=255)
    window_id: Optional[str] = Field(default=None, max_length=128)


# Request body for renaming a conversation
class ConversationUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")
    title: str = Field(max_length=255)


# Request body for one chat turn
class SendMessageRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")
    text: str
    search_enabled: bool = False


class SearchResultOut(BaseModel):
    title: str
    description: str
    url: str
    source: str
    published_at: Optional[str] = None


# Single chat message returned from history and send endpoints
class MessageOut(BaseModel):
    id: int
    conversation_id: int
    sender: str
    text: str
    search_results: Optional[List[SearchResultOut]] = None
    created_at: Optional[str] = None


# Conversation row (id + optional title/window + message count)
class ConversationOut(BaseModel):
    id: int
    title: Optional[str] = None
    window_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    message_count: int = 0
