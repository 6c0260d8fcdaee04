from typing import Iterable, Optional

from sqlalchemy import func, select

from Assistant.models.chat_models import Conversation, Message, Sender


# Create a new conversation for an owner
def create_conversation(session, owner_id, title=None, window_id=None):
    conv = Conversation(owner_id=owner_id, title=title, window_id=window_id)
    session.add(conv)
    session.flush()
    session.refresh(conv)
    return conv


# Get a conversation by id; restricted to one owner when owner_id is given
def get_conversation(session, conversation_id, owner_id=None) -> Optional[Conversation]:
    stmt = select(Conversation).where(Conversation.id == conversation_id)
    if owner_id is not None:
        stmt = stmt.where(Conversation.owner_id == owner_id)
    return session.execute(stmt).scalar_one_or_none()


# List an owner's conversations, newest first
def list_conversations(session, owner_id):
    stmt = (
        select(Conversation)
        .where(Conversation.owner_id == owner_id)
        .order_by(Conversation.created_at.desc(), Conversation.id.desc())
    )
    return list(session.execute(stmt).scalars().all())


# Update the title of a conversation (the only mutable field)
def update_conversation_title(session, conversation, title):
    conversation.title = title
    session.flush()
    session.refresh(conversation)
    return conversation


# Delete a conversation; its messages go with it through the ORM cascade
def delete_conversation(session, conversation):
    session.delete(conversation)
    session.flush()


# Create a new chat message
def create_message(session, conversation_id, sender: Sender, text, search_results=None):
    msg = Message(
        conversation_id=conversation_id,
        sender=sender,
        text=text,
        search_results=search_results,
    )
    session.add(msg)
    session.flush()
    session.refresh(msg)
    return msg


# Get the full message history of a conversation, oldest first
def get_messages(session, conversation_id):
    stmt = (
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at, Message.id)
    )
    return list(session.execute(stmt).scalars().all())


# Get the `limit` most recent messages of a conversation, returned oldest first
def get_recent_messages(session, conversation_id, limit):
    stmt = (
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit)
    )
    recent = list(session.execute(stmt).scalars().all())
    recent.reverse()
    return recent


# Count messages per conversation in one query
def get_message_counts(session, conversation_ids: Iterable[int]) -> dict[int, int]:
    ids = list(conversation_ids)
    if not ids:
        return {}
    stmt = (
        select(Message.conversation_id, func.count(Message.id))
        .where(Message.conversation_id.in_(ids))
        .group_by(Message.conversation_id)
    )
    return {conv_id: count for conv_id, count in session.execute(stmt).all()}
