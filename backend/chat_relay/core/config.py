from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv


load_dotenv()

_DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000,http://127.0.0.1:3000,"
    "http://localhost:5500,http://127.0.0.1:5500,"
    "http://localhost:8080,http://127.0.0.1:8080"
)


class MissingApiKeyError(RuntimeError):
    pass


class Settings:
    """Application settings loaded from environment variables (and .env)."""

    def __init__(self) -> None:
        self.app_env: str = os.getenv("APP_ENV", "development")
        self.google_api_key: Optional[str] = os.getenv("GOOGLE_API_KEY") or None
        self.gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
        self.gemini_api_base: str = os.getenv(
            "GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta"
        )
        self.host: str = os.getenv("HOST", "0.0.0.0")
        self.port: int = int(os.getenv("PORT", "3000") or 3000)
        self.chats_file: str = os.getenv("CHATS_FILE", "chats.json")
        self.model_timeout_seconds: float = float(os.getenv("MODEL_TIMEOUT_SECONDS", "30") or 30)
        self.rate_limit_max: int = int(os.getenv("RATE_LIMIT_MAX", "100") or 100)
        self.rate_limit_window_seconds: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900") or 900)
        self.cors_origins: List[str] = [
            o.strip() for o in os.getenv("CORS_ORIGINS", _DEFAULT_CORS_ORIGINS).split(",") if o.strip()
        ]

    def require_api_key(self) -> str:
        if not self.google_api_key:
            raise MissingApiKeyError(
                "GOOGLE_API_KEY environment variable is required. "
                "Create a .env file with: GOOGLE_API_KEY=your_api_key_here"
            )
        return self.google_api_key


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
