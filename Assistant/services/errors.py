from __future__ import annotations

import enum
from typing import Optional


# Failure categories shared by the AI and search adapters
class ErrorKind(str, enum.Enum):
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    NETWORK = "network"
    UNKNOWN = "unknown"


_RETRYABLE = {
    ErrorKind.AUTH: False,
    ErrorKind.RATE_LIMIT: True,
    ErrorKind.SERVER: True,
    ErrorKind.NETWORK: True,
    ErrorKind.UNKNOWN: True,
}

# HTTP status the REST layer answers with for each failure category
HTTP_STATUS_BY_KIND = {
    ErrorKind.AUTH: 503,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.SERVER: 503,
    ErrorKind.NETWORK: 504,
    ErrorKind.UNKNOWN: 502,
}


class ChatValidationError(ValueError):
    """Request rejected before anything was persisted or called."""


class ConversationNotFoundError(LookupError):
    def __init__(self, conversation_id):
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class ServiceError(Exception):
    """A third-party call failed; ``message`` is safe to show to the user."""

    service = "External service"

    def __init__(self, kind: ErrorKind, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return _RETRYABLE[self.kind]

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def to_payload(self) -> dict:
        return {"detail": self.message, "error": self.kind.value, "retryable": self.retryable}


class ChatCompletionError(ServiceError):
    service = "AI service"


class SearchServiceError(ServiceError):
    service = "Search service"


# Builds the user-facing text for an upstream HTTP status, the same way for every adapter
def describe_status(service: str, status_code: int) -> tuple[ErrorKind, str]:
    if status_code in (401, 403):
        return ErrorKind.AUTH, f"{service} authentication failed. Please contact support."
    if status_code == 402:
        return ErrorKind.AUTH, f"{service} payment required. Please contact support or check the account."
    if status_code == 429:
        return ErrorKind.RATE_LIMIT, f"{service} is currently busy (rate limit). Please wait a moment and try again."
    if status_code >= 500:
        return ErrorKind.SERVER, f"{service} is temporarily unavailable ({status_code}). Please try again later."
    return ErrorKind.UNKNOWN, f"{service} error ({status_code}). Please try again."


def network_error(cls: type[ServiceError], *, timed_out: bool = False) -> ServiceError:
    if timed_out:
        return cls(ErrorKind.NETWORK, f"{cls.service} timed out. Please try again.")
    return cls(ErrorKind.NETWORK, f"Unable to reach {cls.service.lower()}. Please check your connection and try again.")


def unknown_error(cls: type[ServiceError]) -> ServiceError:
    return cls(
        ErrorKind.UNKNOWN,
        f"An unexpected error occurred while contacting the {cls.service.lower()}. Please try again.",
    )
