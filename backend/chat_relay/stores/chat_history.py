import asyncio
import json
import logging
import os
import tempfile
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from chat_relay.core.errors import PersistenceError


logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 30
T = TypeVar("T")


def now_iso() -> str:
    """UTC timestamp with millisecond precision and a trailing Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def derive_title(first_message: str) -> str:
    title = first_message[:TITLE_MAX_CHARS]
    if len(first_message) > TITLE_MAX_CHARS:
        title += "..."
    return title


@dataclass(frozen=True)
class Message:
    role: str
    content: str
    timestamp: str

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Message":
        return cls(role=raw["role"], content=raw["content"], timestamp=raw.get("timestamp", ""))

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp}


@dataclass
class Chat:
    id: str
    title: str
    created_at: str
    messages: List[Message] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Chat":
        return cls(
            id=raw["id"],
            title=raw.get("title", ""),
            created_at=raw.get("createdAt", ""),
            messages=[Message.from_dict(m) for m in raw.get("messages", [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "createdAt": self.created_at,
        }

    def summary(self) -> Dict[str, str]:
        return {"id": self.id, "title": self.title, "createdAt": self.created_at}

    def append_exchange(self, user_text: str, assistant_text: str) -> None:
        self.messages.append(Message(role="user", content=user_text, timestamp=now_iso()))
        self.messages.append(Message(role="assistant", content=assistant_text, timestamp=now_iso()))


def new_chat_id(existing: List[Chat]) -> str:
    taken = {c.id for c in existing}
    while True:
        cid = uuid.uuid4().hex
        if cid not in taken:
            return cid


def find_chat(chats: List[Chat], chat_id: str) -> Optional[Chat]:
    return next((c for c in chats if c.id == chat_id), None)


class ChatStore:
    """Whole-document chat storage.

    Subclasses implement ``_load`` and ``_dump``; everything else, including
    the read-modify-write lock, lives here.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()

    async def ensure_initialized(self) -> None:
        return None

    async def read_all(self) -> List[Chat]:
        await self.ensure_initialized()
        return await self._load()

    async def write_all(self, chats: List[Chat]) -> None:
        await self._dump(chats)

    async def update(self, mutate: Callable[[List[Chat]], T]) -> T:
        """Read the document, apply ``mutate`` in memory and write it back.

        Serialized by an in-process lock. Nothing is written if ``mutate``
        raises.
        """
        async with self._lock:
            chats = await self.read_all()
            result = mutate(chats)
            await self.write_all(chats)
            return result

    async def get(self, chat_id: str) -> Optional[Chat]:
        return find_chat(await self.read_all(), chat_id)

    async def list_all(self) -> List[Dict[str, str]]:
        """Id, title and creation time of every chat, in creation order."""
        return [c.summary() for c in await self.read_all()]

    async def _load(self) -> List[Chat]:
        raise NotImplementedError

    async def _dump(self, chats: List[Chat]) -> None:
        raise NotImplementedError


class JsonChatStore(ChatStore):
    """Chat sessions persisted as one pretty-printed JSON array."""

    def __init__(self, path: str | os.PathLike):
        super().__init__()
        self.path = Path(path)

    async def ensure_initialized(self) -> None:
        await asyncio.to_thread(self._ensure_file)

    def _ensure_file(self) -> None:
        if self.path.exists():
            return
        logger.info("Chat document %s does not exist, creating it", self.path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._write_atomic("[]")
        except OSError as exc:
            raise PersistenceError(f"Unable to create {self.path}: {exc}") from exc

    async def _load(self) -> List[Chat]:
        return await asyncio.to_thread(self._read_file)

    def _read_file(self) -> List[Chat]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as exc:
            logger.error("Failed to read %s: %s", self.path, exc)
            raise PersistenceError(f"Unable to read {self.path}: {exc}") from exc
        if not isinstance(raw, list):
            logger.error("%s does not hold a JSON array", self.path)
            raise PersistenceError(f"{self.path} is not a list of chats")
        try:
            return [Chat.from_dict(item) for item in raw]
        except (KeyError, TypeError, AttributeError) as exc:
            logger.error("Malformed chat record in %s: %s", self.path, exc)
            raise PersistenceError(f"Malformed chat record in {self.path}: {exc}") from exc

    async def _dump(self, chats: List[Chat]) -> None:
        payload = json.dumps([c.to_dict() for c in chats], indent=2, ensure_ascii=False)
        await asyncio.to_thread(self._write_file, payload)

    def _write_file(self, payload: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._write_atomic(payload)
        except OSError as exc:
            logger.error("Failed to write %s: %s", self.path, exc)
            raise PersistenceError(f"Unable to write {self.path}: {exc}") from exc
        logger.info("Wrote %s", self.path)

    def _write_atomic(self, payload: str) -> None:
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp, self.path)
        except BaseException:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise


class InMemoryChatStore(ChatStore):
    """Keeps the document as serialized dicts so callers never share objects with it."""

    def __init__(self, chats: Optional[List[Chat]] = None):
        super().__init__()
        self._doc: List[Dict[str, Any]] = [c.to_dict() for c in chats or []]

    async def _load(self) -> List[Chat]:
        return [Chat.from_dict(raw) for raw in self._doc]

    async def _dump(self, chats: List[Chat]) -> None:
        self._doc = [c.to_dict() for c in chats]
