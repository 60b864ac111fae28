"""
Tests for the JSON chat document store.
"""

import json
from unittest.mock import patch

import pytest

from chat_relay.core.errors import PersistenceError, SessionNotFoundError
from chat_relay.stores.chat_history import (
    Chat,
    InMemoryChatStore,
    JsonChatStore,
    Message,
    derive_title,
    new_chat_id,
)


def _chat(cid: str, *texts: str) -> Chat:
    chat = Chat(id=cid, title=derive_title(texts[0] if texts else cid), created_at="2024-01-01T00:00:00.000Z")
    for i, text in enumerate(texts):
        role = "user" if i % 2 == 0 else "assistant"
        chat.messages.append(Message(role=role, content=text, timestamp=f"2024-01-01T00:00:0{i}.000Z"))
    return chat


class TestJsonChatStore:
    @pytest.mark.asyncio
    async def test_missing_file_is_created_empty(self, tmp_path):
        path = tmp_path / "data" / "chats.json"
        store = JsonChatStore(path)

        assert await store.read_all() == []
        assert json.loads(path.read_text(encoding="utf-8")) == []

    @pytest.mark.asyncio
    async def test_ensure_initialized_keeps_existing_document(self, tmp_path):
        path = tmp_path / "chats.json"
        path.write_text(json.dumps([_chat("a", "hi").to_dict()]), encoding="utf-8")
        store = JsonChatStore(path)

        await store.ensure_initialized()
        await store.ensure_initialized()

        assert [c.id for c in await store.read_all()] == ["a"]

    @pytest.mark.asyncio
    async def test_write_then_read_round_trips(self, tmp_path):
        store = JsonChatStore(tmp_path / "chats.json")
        chats = [_chat("a", "hello", "hey"), _chat("b", "second"), _chat("c")]

        await store.write_all(chats)

        assert await store.read_all() == chats

    @pytest.mark.asyncio
    async def test_document_is_pretty_printed_camel_case(self, tmp_path):
        path = tmp_path / "chats.json"
        store = JsonChatStore(path)

        await store.write_all([_chat("a", "hello")])

        text = path.read_text(encoding="utf-8")
        assert text.startswith("[\n  {")
        assert json.loads(text)[0]["createdAt"] == "2024-01-01T00:00:00.000Z"

    @pytest.mark.asyncio
    async def test_corrupt_document_raises(self, tmp_path):
        path = tmp_path / "chats.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError):
            await JsonChatStore(path).read_all()

    @pytest.mark.asyncio
    async def test_non_array_document_raises(self, tmp_path):
        path = tmp_path / "chats.json"
        path.write_text('{"id": "a"}', encoding="utf-8")

        with pytest.raises(PersistenceError):
            await JsonChatStore(path).read_all()

    @pytest.mark.asyncio
    async def test_write_failure_raises(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x", encoding="utf-8")
        store = JsonChatStore(blocker / "chats.json")

        with pytest.raises(PersistenceError):
            await store.write_all([_chat("a", "hi")])

    @pytest.mark.asyncio
    async def test_update_does_not_write_when_mutator_raises(self, tmp_path):
        store = JsonChatStore(tmp_path / "chats.json")
        await store.write_all([_chat("a", "hi")])

        def boom(chats):
            chats.clear()
            raise SessionNotFoundError("zzz")

        with pytest.raises(SessionNotFoundError):
            await store.update(boom)

        assert [c.id for c in await store.read_all()] == ["a"]

    @pytest.mark.asyncio
    async def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonChatStore(tmp_path / "chats.json")
        await store.write_all([_chat("a", "hi")])
        await store.write_all([_chat("b", "hi")])

        assert sorted(p.name for p in tmp_path.iterdir()) == ["chats.json"]


class TestInMemoryChatStore:
    @pytest.mark.asyncio
    async def test_update_returns_mutator_result_and_persists(self):
        store = InMemoryChatStore()

        def add(chats):
            chats.append(_chat("a", "hi"))
            return "a"

        assert await store.update(add) == "a"
        assert (await store.get("a")).id == "a"

    @pytest.mark.asyncio
    async def test_reads_are_independent_copies(self):
        store = InMemoryChatStore([_chat("a", "hi")])

        first = await store.read_all()
        first[0].messages.clear()

        assert len((await store.read_all())[0].messages) == 1

    @pytest.mark.asyncio
    async def test_get_unknown_returns_none(self):
        assert await InMemoryChatStore().get("missing") is None

    @pytest.mark.asyncio
    async def test_list_all_returns_summaries_in_insertion_order(self):
        store = InMemoryChatStore([_chat("b", "second", "reply"), _chat("a", "first")])

        assert await store.list_all() == [
            {"id": "b", "title": "second", "createdAt": "2024-01-01T00:00:00.000Z"},
            {"id": "a", "title": "first", "createdAt": "2024-01-01T00:00:00.000Z"},
        ]


class TestHelpers:
    def test_title_short_message_unchanged(self):
        assert derive_title("Hello") == "Hello"

    def test_title_exactly_thirty_chars_has_no_ellipsis(self):
        assert derive_title("x" * 30) == "x" * 30

    def test_title_truncated_with_ellipsis(self):
        assert derive_title("a" * 31) == "a" * 30 + "..."

    def test_new_chat_id_skips_existing(self):
        taken = _chat("dup")
        ids = iter(["dup", "fresh"])

        class _FakeUuid:
            def __init__(self, value):
                self.hex = value

        with patch("chat_relay.stores.chat_history.uuid.uuid4", side_effect=lambda: _FakeUuid(next(ids))):
            assert new_chat_id([taken]) == "fresh"

    def test_append_exchange_keeps_prior_messages(self):
        chat = _chat("a", "one", "two")
        before = list(chat.messages)

        chat.append_exchange("three", "four")

        assert chat.messages[:2] == before
        assert [(m.role, m.content) for m in chat.messages[2:]] == [("user", "three"), ("assistant", "four")]
