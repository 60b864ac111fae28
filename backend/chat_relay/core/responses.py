import logging
import uuid
from typing import Any, Dict

from fastapi.responses import JSONResponse

from chat_relay.core.errors import (
    ChatRelayError,
    ValidationError,
    classify,
    public_message,
    status_for,
)
from chat_relay.stores.chat_history import now_iso


logger = logging.getLogger(__name__)


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def failure(status_code: int, error: str, **extra: Any) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "error": error, "timestamp": now_iso()}
    if status_code >= 500:
        body["requestId"] = extra.pop("request_id", None) or new_request_id()
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def error_response(exc: Exception, context: str, server_error: str | None = None) -> JSONResponse:
    """Map an exception to the JSON failure body.

    ``server_error`` overrides the client-facing text for 5xx outcomes.
    """
    kind = classify(exc)
    status_code = status_for(kind)
    if isinstance(exc, ValidationError):
        return failure(status_code, public_message(kind), details=exc.details)
    message = public_message(kind)
    if status_code >= 500:
        request_id = new_request_id()
        if isinstance(exc, ChatRelayError):
            logger.error("%s [%s]: %s", context, request_id, exc)
        else:
            logger.exception("%s [%s]: %s", context, request_id, exc)
        return failure(status_code, server_error or message, request_id=request_id)
    logger.warning("%s: %s", context, exc)
    return failure(status_code, message)
