from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from Assistant.auth import get_current_user_id
from Assistant.database import get_db
from Assistant.schemas.chat import ConversationCreate, ConversationOut, ConversationUpdate, MessageOut, SendMessageRequest
from Assistant.services.chat_pipeline import MessagePipeline, PipelineSettings
from Assistant.services.chat_service import ChatService
from Assistant.services.openrouter_client import ChatCompletionClient, get_chat_completion_client
from Assistant.services.search.base import SearchProvider
from Assistant.services.search.factory import get_search_provider


router = APIRouter(prefix="/api/chat", tags=["chat"])


_settings: Optional[PipelineSettings] = None


# Parsed once per process; app startup calls this so a bad value fails fast
def get_pipeline_settings() -> PipelineSettings:
    global _settings
    if _settings is None:
        _settings = PipelineSettings.from_env()
    return _settings


def get_message_pipeline(
    db: Session = Depends(get_db),
    ai_client: ChatCompletionClient = Depends(get_chat_completion_client),
    search_provider: SearchProvider = Depends(get_search_provider),
    settings: PipelineSettings = Depends(get_pipeline_settings),
) -> MessagePipeline:
    return MessagePipeline(db, ai_client=ai_client, search_provider=search_provider, settings=settings)


# Lists the caller's conversations, newest first
@router.get("/conversations")
def list_conversations(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> list[ConversationOut]:
    return ChatService(db).list_conversations(owner_id=user_id)


# Creates an empty conversation
@router.post("/conversations", status_code=status.HTTP_201_CREATED)
def create_conversation(
    payload: ConversationCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> ConversationOut:
    return ChatService(db).create_conversation(owner_id=user_id, payload=payload)


# Renames a conversation
@router.patch("/conversations/{conversation_id}")
def rename_conversation(
    conversation_id: int,
    payload: ConversationUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> ConversationOut:
    return ChatService(db).rename_conversation(owner_id=user_id, conversation_id=conversation_id, payload=payload)


# Deletes a conversation together with its messages
@router.delete("/conversations/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_conversation(
    conversation_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> Response:
    ChatService(db).delete_conversation(owner_id=user_id, conversation_id=conversation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Retrieves all messages of a conversation, oldest first
@router.get("/conversations/{conversation_id}/messages")
def list_messages(
    conversation_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> list[MessageOut]:
    return ChatService(db).list_messages(owner_id=user_id, conversation_id=conversation_id)


# Runs one chat turn and returns the stored AI reply
@router.post("/conversations/{conversation_id}/messages")
async def send_message(
    conversation_id: int,
    payload: SendMessageRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    pipeline: MessagePipeline = Depends(get_message_pipeline),
) -> MessageOut:
    svc = ChatService(db)
    return await svc.send_message(owner_id=user_id, conversation_id=conversation_id, payload=payload, pipeline=pipeline)
