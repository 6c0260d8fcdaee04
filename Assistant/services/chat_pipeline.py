from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from Assistant.crud.chat import create_message, get_conversation, get_recent_messages
from Assistant.models.chat_models import Message, Sender
from Assistant.services.errors import ChatCompletionError, ChatValidationError, ConversationNotFoundError, SearchServiceError
from Assistant.services.search.base import SearchProvider, SearchResult, search_async

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_WINDOW = 10
SEARCH_QUERY_MAX_CHARS = 100
SEARCH_RESULT_COUNT = 3
APOLOGY_TEXT = "Sorry, I couldn't generate a response right now. Please try again in a moment."


class ChatClient(Protocol):
    async def complete(self, messages: list[dict]) -> str: ...


# What happens to a turn when the AI call fails
class FailureMode(str, enum.Enum):
    RAISE = "raise"      # propagate the error, leave the user message unanswered
    APOLOGY = "apology"  # persist APOLOGY_TEXT as the AI reply and return it


@dataclass(frozen=True)
class PipelineSettings:
    context_window: int = DEFAULT_CONTEXT_WINDOW
    failure_mode: FailureMode = FailureMode.RAISE

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        window = int(os.getenv("CHAT_CONTEXT_WINDOW") or DEFAULT_CONTEXT_WINDOW)
        if window < 1:
            raise ValueError("CHAT_CONTEXT_WINDOW must be at least 1.")
        mode = (os.getenv("CHAT_FAILURE_MODE") or FailureMode.RAISE.value).strip().lower()
        return cls(context_window=window, failure_mode=FailureMode(mode))


_ROLE_BY_SENDER = {
    Sender.USER: "user",
    Sender.AI: "assistant",
    Sender.SYSTEM: "assistant",
}


# Provider role for a stored sender; every Sender member must have an entry
def role_for_sender(sender: Sender) -> str:
    try:
        return _ROLE_BY_SENDER[Sender(sender)]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown message sender: {sender!r}")


# Synthetic system message that hands search results to the model
def build_search_context(results: list[SearchResult]) -> dict:
    blocks = [
        f"Result {i}:\nTitle: {r.title}\nDescription: {r.description}\nURL: {r.url}\n"
        for i, r in enumerate(results, start=1)
    ]
    content = (
        "Here are some recent search results that might be relevant to the user's query:\n\n"
        + "\n---\n".join(blocks)
        + "\n\nPlease use these results to inform your answer if they are relevant."
    )
    return {"role": "system", "content": content}


class MessagePipeline:
    """Runs one chat turn: store the user message, build a context window,
    optionally add search results, ask the model, store and return its reply.

    Ownership of the conversation is the caller's concern. The two writes are
    committed separately, so a failure after the first leaves an unanswered
    user message behind.
    """

    def __init__(
        self,
        db: Session,
        *,
        ai_client: ChatClient,
        search_provider: Optional[SearchProvider] = None,
        settings: Optional[PipelineSettings] = None,
    ):
        self.db = db
        self.ai_client = ai_client
        self.search_provider = search_provider
        self.settings = settings or PipelineSettings()

    async def send_message(self, conversation_id: int, text: str, search_enabled: bool = False) -> Message:
        if not isinstance(text, str) or not text.strip():
            raise ChatValidationError("Message text cannot be empty.")
        if get_conversation(self.db, conversation_id) is None:
            raise ConversationNotFoundError(conversation_id)

        text = text.strip()
        logger.info("chat.turn.start: conv=%s search=%s chars=%d", conversation_id, bool(search_enabled), len(text))

        self._persist(conversation_id, Sender.USER, text)
        context = self._build_context(conversation_id)
        # No transaction may stay open across the search and AI calls
        self.db.commit()

        results: list[SearchResult] = []
        if search_enabled:
            results = await self._search(text[:SEARCH_QUERY_MAX_CHARS])
        if results:
            context = [build_search_context(results), *context]

        try:
            reply = await self.ai_client.complete(context)
        except ChatCompletionError as e:
            logger.warning("chat.turn.ai_failed: conv=%s kind=%s", conversation_id, e.kind.value)
            if self.settings.failure_mode is FailureMode.APOLOGY:
                return self._persist(conversation_id, Sender.AI, APOLOGY_TEXT)
            raise

        ai_msg = self._persist(
            conversation_id,
            Sender.AI,
            reply,
            search_results=[r.to_dict() for r in results] or None,
        )
        logger.info("chat.turn.done: conv=%s context=%d results=%d", conversation_id, len(context), len(results))
        return ai_msg

    # Recent history, oldest first, as provider {role, content} pairs
    def _build_context(self, conversation_id: int) -> list[dict]:
        recent = get_recent_messages(self.db, conversation_id, self.settings.context_window)
        return [{"role": role_for_sender(m.sender), "content": m.text} for m in recent]

    # Search failures never fail the turn; they degrade to an unaugmented call
    async def _search(self, query: str) -> list[SearchResult]:
        if self.search_provider is None:
            logger.warning("chat.search.skipped: no provider configured")
            return []
        try:
            return await search_async(self.search_provider, query, SEARCH_RESULT_COUNT)
        except SearchServiceError as e:
            logger.warning("chat.search.failed: kind=%s detail=%s", e.kind.value, e.message)
            return []
        except Exception:
            logger.exception("chat.search.failed: provider=%s", getattr(self.search_provider, "name", "?"))
            return []

    def _persist(self, conversation_id: int, sender: Sender, text: str, search_results=None) -> Message:
        try:
            msg = create_message(self.db, conversation_id, sender, text, search_results=search_results)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("chat.persist.error: conv=%s sender=%s", conversation_id, sender.value)
            raise
        return msg
