import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from chat_relay.core.errors import (
    EmptyResponseError,
    ModelTimeoutError,
    SessionNotFoundError,
    ValidationError,
)
from chat_relay.services.history import HistoryTurn, project_history
from chat_relay.stores.chat_history import (
    Chat,
    ChatStore,
    derive_title,
    find_chat,
    new_chat_id,
    now_iso,
)
from chat_relay.utils.validation import validate_chat_input


logger = logging.getLogger(__name__)

DEFAULT_MODEL_LABEL = "Gemini"
DEFAULT_TIMEOUT_SECONDS = 30.0


class ModelClient(Protocol):
    async def generate(self, prompt: str, history: Optional[List[HistoryTurn]] = None) -> str:
        ...


@dataclass
class ChatReply:
    message: str
    model: str
    timestamp: str
    message_length: int
    chat_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "message": self.message,
            "model": self.model,
            "timestamp": self.timestamp,
            "messageLength": self.message_length,
            "chatId": self.chat_id,
        }


class ChatService:
    """Validate, resolve the session, ask the model, record the exchange."""

    def __init__(
        self,
        store: ChatStore,
        client: ModelClient,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        default_model_label: str = DEFAULT_MODEL_LABEL,
    ):
        self.store = store
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.default_model_label = default_model_label

    async def send(self, message: Any, ai_model: Any = None, chat_id: Any = None) -> ChatReply:
        errors = validate_chat_input(message, ai_model, chat_id)
        if errors:
            raise ValidationError(errors)

        clean = message.strip()
        preview = clean[:100] + ("..." if len(clean) > 100 else "")
        logger.info("Received message: %s", preview)
        logger.info("AI model: %s, chat id: %s", ai_model or self.default_model_label, chat_id or "new chat")

        history: List[HistoryTurn] = []
        if chat_id:
            chat = await self.store.get(chat_id)
            if chat is None:
                raise SessionNotFoundError(chat_id)
            history = project_history(chat.messages)
            logger.info("Loaded %d message(s) of history for %s", len(history), chat_id)

        reply = await self._ask(clean, history)

        def record(chats: List[Chat]) -> str:
            if chat_id:
                current = find_chat(chats, chat_id)
                if current is None:
                    # deleted while the model was answering
                    raise SessionNotFoundError(chat_id)
            else:
                current = Chat(id=new_chat_id(chats), title=derive_title(clean), created_at=now_iso())
                chats.append(current)
            current.append_exchange(clean, reply)
            return current.id

        resolved_id = await self.store.update(record)
        logger.info("Reply generated and saved for %s", resolved_id)

        return ChatReply(
            message=reply,
            model=ai_model or self.default_model_label,
            timestamp=now_iso(),
            message_length=len(reply),
            chat_id=resolved_id,
        )

    async def _ask(self, prompt: str, history: List[HistoryTurn]) -> str:
        # wait_for cancels the pending request when the deadline passes.
        try:
            if history:
                call = self.client.generate(prompt, history)
            else:
                call = self.client.generate(prompt)
            text = await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise ModelTimeoutError("Request timeout") from exc
        if not text or not text.strip():
            raise EmptyResponseError()
        return text.strip()

    async def list_chats(self) -> List[Dict[str, str]]:
        return await self.store.list_all()

    async def get_chat(self, chat_id: str) -> Chat:
        chat = await self.store.get(chat_id)
        if chat is None:
            raise SessionNotFoundError(chat_id)
        return chat

    async def delete_chat(self, chat_id: str) -> None:
        def remove(chats: List[Chat]) -> None:
            remaining = [c for c in chats if c.id != chat_id]
            if len(remaining) == len(chats):
                raise SessionNotFoundError(chat_id)
            chats[:] = remaining

        await self.store.update(remove)
        logger.info("Deleted chat %s", chat_id)
