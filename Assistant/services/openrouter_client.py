from __future__ import annotations

import logging
import os
from typing import Optional

import openai
from openai import AsyncOpenAI

from Assistant.services.errors import ChatCompletionError, ErrorKind, describe_status, network_error, unknown_error

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "deepseek/deepseek-r1-0528-qwen3-8b:free"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TIMEOUT_SECONDS = 30.0
APP_TITLE = "Smart Assistant"


# Single-call chat completion against an OpenAI-compatible provider (OpenRouter by default).
# No streaming, no tools, no retries: one request per turn, bounded by a timeout.
class ChatCompletionClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        temperature: float = DEFAULT_TEMPERATURE,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        app_url: str = "http://localhost:3000",
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds
        self.app_url = app_url

    @classmethod
    def from_env(cls) -> "ChatCompletionClient":
        api_key = os.getenv("OPENROUTER_API_KEY")
        if not api_key:
            logger.warning("OPENROUTER_API_KEY is not set; chat turns will fail until it is configured.")
        return cls(
            api_key=api_key,
            model=os.getenv("OPENROUTER_MODEL") or DEFAULT_MODEL,
            base_url=os.getenv("OPENROUTER_BASE_URL") or DEFAULT_BASE_URL,
            app_url=os.getenv("APP_URL") or "http://localhost:3000",
        )

    def _client(self) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout_seconds,
            max_retries=0,
            default_headers={"HTTP-Referer": self.app_url, "X-Title": APP_TITLE},
        )

    # Returns the assistant text for an ordered list of {role, content} messages
    async def complete(self, messages: list[dict]) -> str:
        if not self.api_key:
            raise ChatCompletionError(
                ErrorKind.AUTH,
                "AI service is currently unavailable (API key missing). Please contact support.",
            )

        logger.info("openrouter.request: model=%s messages=%d", self.model, len(messages))
        client = self._client()
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
            )
        except openai.APITimeoutError:
            logger.warning("openrouter.timeout: after %.0fs", self.timeout_seconds)
            raise network_error(ChatCompletionError, timed_out=True)
        except openai.APIConnectionError as e:
            logger.warning("openrouter.connection_error: %s", e)
            raise network_error(ChatCompletionError)
        except openai.APIStatusError as e:
            logger.error("openrouter.http_error: status=%s", e.status_code)
            kind, message = describe_status(ChatCompletionError.service, e.status_code)
            raise ChatCompletionError(kind, message, status_code=e.status_code)
        except openai.OpenAIError:
            logger.exception("openrouter.error")
            raise unknown_error(ChatCompletionError)
        finally:
            try:
                await client.close()
            except Exception as e:
                logger.debug("openrouter.close_failed: %s", e)

        content = _extract_content(response)
        if content is None:
            logger.error("openrouter.malformed_response: model=%s", self.model)
            raise ChatCompletionError(ErrorKind.UNKNOWN, "AI service returned an empty response. Please try again.")
        logger.info("openrouter.response: chars=%d", len(content))
        return content


# Pull the first choice's text out of a chat completion, or None when the payload is unusable
def _extract_content(response: object) -> Optional[str]:
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        return None
    if not isinstance(content, str) or not content.strip():
        return None
    return content.strip()


_singleton: Optional[ChatCompletionClient] = None


def get_chat_completion_client() -> ChatCompletionClient:
    global _singleton
    if _singleton is None:
        _singleton = ChatCompletionClient.from_env()
    return _singleton
