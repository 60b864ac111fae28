import logging
import platform
import time

import psutil
from fastapi import APIRouter, Depends

from chat_relay.core.config import Settings, get_settings
from chat_relay.stores.chat_history import now_iso


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_STARTED_AT = time.monotonic()

ENDPOINTS = {
    "POST /api/chat": "Main chat endpoint with AI",
    "POST /prompt": "Legacy prompt endpoint",
    "GET /health": "Health check endpoint",
    "GET /api/status": "API status information",
    "GET /api/docs": "API documentation",
    "GET /api/chats": "List all chats",
    "GET /api/chat/{id}": "Get specific chat",
    "DELETE /api/chat/{id}": "Delete specific chat",
}


def _mb(num_bytes: int) -> str:
    return f"{round(num_bytes / 1024 / 1024)} MB"


@router.get("/health")
def health(settings: Settings = Depends(get_settings)):
    mem = psutil.Process().memory_info()
    logger.info("Health check requested")
    return {
        "status": "OK",
        "timestamp": now_iso(),
        "uptime": f"{int(time.monotonic() - _STARTED_AT)} seconds",
        "memory": {
            "used": _mb(mem.rss),
            "total": _mb(psutil.virtual_memory().total),
        },
        "pythonVersion": platform.python_version(),
        "environment": settings.app_env,
    }


@router.get("/api/status")
def status(settings: Settings = Depends(get_settings)):
    window_minutes = settings.rate_limit_window_seconds // 60
    return {
        "status": "API is running",
        "version": "1.0.0",
        "timestamp": now_iso(),
        "endpoints": ENDPOINTS,
        "rateLimit": {
            "windowMs": f"{window_minutes} minutes",
            "max": f"{settings.rate_limit_max} requests per IP",
        },
    }


@router.get("/api/docs")
def docs():
    return {
        "title": "Gemini Chat Relay API Documentation",
        "version": "1.0.0",
        "endpoints": [
            {
                "method": "POST",
                "path": "/api/chat",
                "description": "Send message to AI and get response",
                "body": {
                    "message": "string (required, max 2000 chars)",
                    "aiModel": "string (optional, default: 'Gemini')",
                    "chatId": "string (optional, for existing chat)",
                },
                "response": {
                    "success": "boolean",
                    "message": "string (AI response)",
                    "model": "string",
                    "timestamp": "ISO string",
                    "messageLength": "number",
                    "chatId": "string",
                },
            },
            {"method": "GET", "path": "/health", "description": "Check server health status"},
            {"method": "GET", "path": "/api/chats", "description": "Get list of all chats"},
            {"method": "GET", "path": "/api/chat/{id}", "description": "Get specific chat by ID"},
            {
                "method": "DELETE",
                "path": "/api/chat/{id}",
                "description": "Delete a specific chat by ID",
                "response": {"success": "boolean", "message": "string", "timestamp": "ISO string"},
            },
            {
                "method": "POST",
                "path": "/prompt",
                "description": "Legacy stateless prompt, nothing is stored",
                "body": {"prompt": "string (required)"},
                "response": {"message": "string", "timestamp": "ISO string"},
            },
        ],
    }
