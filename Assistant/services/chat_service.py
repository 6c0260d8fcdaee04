from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from Assistant.crud.chat import (
    create_conversation,
    delete_conversation,
    get_conversation,
    get_message_counts,
    get_messages,
    list_conversations,
    update_conversation_title,
)
from Assistant.models.chat_models import Conversation, Message, Sender
from Assistant.schemas.chat import ConversationCreate, ConversationOut, ConversationUpdate, MessageOut, SendMessageRequest
from Assistant.services.chat_pipeline import MessagePipeline
from Assistant.services.errors import ConversationNotFoundError

logger = logging.getLogger(__name__)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def message_out(m: Message) -> MessageOut:
    return MessageOut(
        id=m.id,
        conversation_id=m.conversation_id,
        sender=Sender(m.sender).value,
        text=m.text,
        search_results=m.search_results or None,
        created_at=_iso(m.created_at),
    )


def conversation_out(c: Conversation, message_count: int = 0) -> ConversationOut:
    return ConversationOut(
        id=c.id,
        title=c.title,
        window_id=c.window_id,
        created_at=_iso(c.created_at),
        updated_at=_iso(c.updated_at),
        message_count=message_count,
    )


# Conversation/message operations for the REST layer; every call is scoped to one owner
class ChatService:
    # Initializes the service with a DB session used by CRUD helpers and the pipeline.
    def __init__(self, db: Session):
        self.db = db

    # Conversations not owned by the caller are reported exactly like missing ones
    def _owned_conversation(self, owner_id: str, conversation_id: int) -> Conversation:
        conv = get_conversation(self.db, conversation_id, owner_id)
        if conv is None:
            raise ConversationNotFoundError(conversation_id)
        return conv

    def list_conversations(self, *, owner_id: str) -> list[ConversationOut]:
        conversations = list_conversations(self.db, owner_id)
        counts = get_message_counts(self.db, (c.id for c in conversations))
        return [conversation_out(c, counts.get(c.id, 0)) for c in conversations]

    def create_conversation(self, *, owner_id: str, payload: ConversationCreate) -> ConversationOut:
        title = (payload.title or "").strip() or None
        conv = create_conversation(self.db, owner_id, title=title, window_id=payload.window_id)
        self.db.commit()
        self.db.refresh(conv)
        logger.info("chat.conversation.created: conv=%s", conv.id)
        return conversation_out(conv)

    def rename_conversation(self, *, owner_id: str, conversation_id: int, payload: ConversationUpdate) -> ConversationOut:
        conv = self._owned_conversation(owner_id, conversation_id)
        update_conversation_title(self.db, conv, payload.title.strip() or None)
        self.db.commit()
        self.db.refresh(conv)
        counts = get_message_counts(self.db, [conv.id])
        return conversation_out(conv, counts.get(conv.id, 0))

    def delete_conversation(self, *, owner_id: str, conversation_id: int) -> None:
        conv = self._owned_conversation(owner_id, conversation_id)
        delete_conversation(self.db, conv)
        self.db.commit()
        logger.info("chat.conversation.deleted: conv=%s", conversation_id)

    def list_messages(self, *, owner_id: str, conversation_id: int) -> list[MessageOut]:
        self._owned_conversation(owner_id, conversation_id)
        return [message_out(m) for m in get_messages(self.db, conversation_id)]

    # Verifies ownership, then runs one chat turn through the pipeline
    async def send_message(
        self,
        *,
        owner_id: str,
        conversation_id: int,
        payload: SendMessageRequest,
        pipeline: MessagePipeline,
    ) -> MessageOut:
        self._owned_conversation(owner_id, conversation_id)
        ai_msg = await pipeline.send_message(conversation_id, payload.text, payload.search_enabled)
        return message_out(ai_msg)
