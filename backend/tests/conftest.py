"""
Shared fixtures: an in-memory store, a scripted model client and an API
client wired to both through dependency overrides.
"""

import asyncio
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from chat_relay.deps.services import get_chat_service, get_gemini_client, get_store
from chat_relay.main import create_app
from chat_relay.services.chat_service import ChatService
from chat_relay.services.history import HistoryTurn
from chat_relay.stores.chat_history import InMemoryChatStore


class FakeModelClient:
    """Returns queued replies (or raises queued errors) and records every call."""

    def __init__(self, replies: Optional[List] = None, delay: float = 0.0):
        self.replies = list(replies or [])
        self.delay = delay
        self.calls: List[tuple] = []
        self.blocking_calls: List[str] = []

    def _next(self):
        item = self.replies.pop(0) if self.replies else "Hi there!"
        if isinstance(item, Exception):
            raise item
        return item

    async def generate(self, prompt: str, history: Optional[List[HistoryTurn]] = None) -> str:
        self.calls.append((prompt, history))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self._next()

    def generate_blocking(self, prompt: str) -> str:
        self.blocking_calls.append(prompt)
        return self._next()


@pytest.fixture
def store():
    return InMemoryChatStore()


@pytest.fixture
def model_client():
    return FakeModelClient()


@pytest.fixture
def service(store, model_client):
    return ChatService(store, model_client, timeout_seconds=1.0)


@pytest.fixture
def app(store, model_client):
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_gemini_client] = lambda: model_client
    app.dependency_overrides[get_chat_service] = lambda: ChatService(store, model_client, timeout_seconds=1.0)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def api(app):
    return TestClient(app)
