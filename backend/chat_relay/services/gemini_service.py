import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp
import requests

from chat_relay.core.config import Settings
from chat_relay.core.errors import AuthError, GeminiError, ModelTimeoutError, QuotaError
from chat_relay.services.history import HistoryTurn, to_contents


logger = logging.getLogger(__name__)

DEFAULT_GENERATION_CONFIG = {
    "temperature": 0.7,
    "topP": 0.95,
    "topK": 64,
    "maxOutputTokens": 8192,
}
# Transport-level ceiling; the chat service applies its own shorter deadline.
HTTP_TIMEOUT_SECONDS = 120


def _error_payload(body: Any) -> Dict[str, Any]:
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"]
    return {}


def upstream_error(http_status: int, body: Any) -> Exception:
    """Turn a non-200 generateContent response into a typed error.

    Gemini reports an invalid key as 400 INVALID_ARGUMENT, so the message and
    error details are inspected as well as the HTTP status.
    """
    err = _error_payload(body)
    status = str(err.get("status") or "")
    message = str(err.get("message") or f"HTTP {http_status} from Gemini")
    reasons = {str(d.get("reason")) for d in err.get("details") or [] if isinstance(d, dict)}

    if http_status in (401, 403) or "API_KEY_INVALID" in reasons or "API key" in message:
        return AuthError(message)
    if http_status == 429 or status == "RESOURCE_EXHAUSTED":
        return QuotaError(message)
    if http_status in (408, 504) or status == "DEADLINE_EXCEEDED":
        return ModelTimeoutError(message)
    return GeminiError(f"Gemini error {http_status}: {message}")


def extract_text(data: Dict[str, Any]) -> str:
    """Join the text parts of the first candidate; "" when there are none."""
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))


class GeminiClient:
    """Minimal client for the Generative Language ``generateContent`` endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        generation_config: Optional[Dict[str, Any]] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.generation_config = dict(generation_config or DEFAULT_GENERATION_CONFIG)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiClient":
        return cls(
            api_key=settings.require_api_key(),
            model=settings.gemini_model,
            base_url=settings.gemini_api_base,
        )

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def _payload(self, prompt: str, history: Optional[List[HistoryTurn]] = None) -> Dict[str, Any]:
        contents = to_contents(history or [])
        contents.append({"role": "user", "parts": [{"text": prompt}]})
        return {"contents": contents, "generationConfig": self.generation_config}

    async def generate(self, prompt: str, history: Optional[List[HistoryTurn]] = None) -> str:
        """Single-shot when ``history`` is empty, otherwise a continuation call."""
        payload = self._payload(prompt, history)
        logger.info("Calling %s with %d content turn(s)", self.model, len(payload["contents"]))
        timeout = aiohttp.ClientTimeout(total=HTTP_TIMEOUT_SECONDS)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    self.url, params={"key": self.api_key}, json=payload
                ) as resp:
                    body = await resp.json(content_type=None)
                    if resp.status != 200:
                        raise upstream_error(resp.status, body)
        except asyncio.TimeoutError as exc:
            raise ModelTimeoutError("Request timeout") from exc
        except aiohttp.ClientError as exc:
            raise GeminiError(f"Unable to reach Gemini: {exc}") from exc
        except ValueError as exc:
            raise GeminiError(f"Invalid JSON from Gemini: {exc}") from exc
        return extract_text(body or {})

    def generate_blocking(self, prompt: str) -> str:
        """Same request over requests, for sync endpoints."""
        try:
            resp = requests.post(
                self.url,
                params={"key": self.api_key},
                json=self._payload(prompt),
                timeout=HTTP_TIMEOUT_SECONDS,
            )
        except requests.Timeout as exc:
            raise ModelTimeoutError(f"Request timeout: {exc}") from exc
        except requests.RequestException as exc:
            raise GeminiError(f"Unable to reach Gemini: {exc}") from exc
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code != 200:
            raise upstream_error(resp.status_code, body)
        return extract_text(body)
