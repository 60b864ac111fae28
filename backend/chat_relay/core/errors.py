from enum import Enum
from typing import List


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    QUOTA = "quota"
    EMPTY_RESPONSE = "empty_response"
    PERSISTENCE = "persistence"
    INTERNAL = "internal"


_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTH: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.TIMEOUT: 408,
    ErrorKind.QUOTA: 429,
    ErrorKind.EMPTY_RESPONSE: 500,
    ErrorKind.PERSISTENCE: 500,
    ErrorKind.INTERNAL: 500,
}

# Text shown to clients; the raw upstream message only goes to the log.
_PUBLIC_MESSAGE = {
    ErrorKind.VALIDATION: "Validation failed",
    ErrorKind.AUTH: "API key error",
    ErrorKind.NOT_FOUND: "Chat ID not found",
    ErrorKind.TIMEOUT: "Request timeout",
    ErrorKind.QUOTA: "API quota exceeded",
    ErrorKind.EMPTY_RESPONSE: "Empty response from AI",
    ErrorKind.PERSISTENCE: "Internal server error",
    ErrorKind.INTERNAL: "Internal server error",
}


class ChatRelayError(Exception):
    """Base error; every subclass carries the kind that decides its HTTP status."""

    kind = ErrorKind.INTERNAL


class ValidationError(ChatRelayError):
    kind = ErrorKind.VALIDATION

    def __init__(self, details: List[str]):
        super().__init__("Validation failed: " + "; ".join(details))
        self.details = list(details)


class SessionNotFoundError(ChatRelayError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, chat_id: str | None = None):
        super().__init__("Chat ID not found")
        self.chat_id = chat_id


class ModelTimeoutError(ChatRelayError):
    kind = ErrorKind.TIMEOUT


class QuotaError(ChatRelayError):
    kind = ErrorKind.QUOTA


class AuthError(ChatRelayError):
    kind = ErrorKind.AUTH


class EmptyResponseError(ChatRelayError):
    kind = ErrorKind.EMPTY_RESPONSE

    def __init__(self, message: str = "Empty response from AI"):
        super().__init__(message)


class PersistenceError(ChatRelayError):
    kind = ErrorKind.PERSISTENCE


class GeminiError(ChatRelayError):
    """Upstream failure that is neither auth, quota nor timeout."""

    kind = ErrorKind.INTERNAL


def classify(exc: BaseException) -> ErrorKind:
    """Return the error kind for ``exc``.

    Our own errors carry a kind. Anything else (a library error that slipped
    through) is classified from its text, first match wins.
    """
    if isinstance(exc, ChatRelayError):
        return exc.kind
    text = str(exc)
    if "API key" in text:
        return ErrorKind.AUTH
    if "timeout" in text.lower():
        return ErrorKind.TIMEOUT
    if "quota" in text:
        return ErrorKind.QUOTA
    if "Chat ID not found" in text:
        return ErrorKind.NOT_FOUND
    return ErrorKind.INTERNAL


def status_for(kind: ErrorKind) -> int:
    return _STATUS[kind]


def public_message(kind: ErrorKind) -> str:
    return _PUBLIC_MESSAGE[kind]
