from functools import lru_cache

from fastapi import Depends

from chat_relay.core.config import Settings, get_settings
from chat_relay.services.chat_service import ChatService
from chat_relay.services.gemini_service import GeminiClient
from chat_relay.stores.chat_history import ChatStore, JsonChatStore


@lru_cache(maxsize=1)
def get_store() -> ChatStore:
    return JsonChatStore(get_settings().chats_file)


@lru_cache(maxsize=1)
def get_gemini_client() -> GeminiClient:
    return GeminiClient.from_settings(get_settings())


def get_chat_service(
    store: ChatStore = Depends(get_store),
    client: GeminiClient = Depends(get_gemini_client),
    settings: Settings = Depends(get_settings),
) -> ChatService:
    return ChatService(store, client, timeout_seconds=settings.model_timeout_seconds)
