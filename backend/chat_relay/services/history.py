from typing import Dict, Iterable, List, NamedTuple

from chat_relay.stores.chat_history import Message


class HistoryTurn(NamedTuple):
    role: str
    text: str

    def to_content(self) -> Dict:
        return {"role": self.role, "parts": [{"text": self.text}]}


def project_history(messages: Iterable[Message]) -> List[HistoryTurn]:
    """Replay stored messages, in order, as turns for a continued conversation.

    Gemini calls the assistant side ``model``; everything else is sent as ``user``.
    """
    return [HistoryTurn("model" if m.role == "assistant" else "user", m.content) for m in messages]


def to_contents(turns: Iterable[HistoryTurn]) -> List[Dict]:
    return [t.to_content() for t in turns]
