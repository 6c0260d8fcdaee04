import enum

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import relationship

from Assistant.database import Base


# Author of a message; the only values the messages.sender column may hold
class Sender(str, enum.Enum):
    USER = "user"
    AI = "ai"
    SYSTEM = "system"


# Stores conversation-level metadata (owner, title, dashboard window)
class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String(64), index=True, nullable=False)
    title = Column(String(255), nullable=True)
    window_id = Column(String(128), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.id",
    )


# Stores individual chat messages; rows are never updated after insert
class Message(Base):
    __tablename__ = "messages"

    __table_args__ = (
        Index("ix_messages_conversation_id_created_at", "conversation_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, nullable=False)
    sender = Column(
        Enum(Sender, name="message_sender", native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    search_results = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    conversation = relationship("Conversation", back_populates="messages")
