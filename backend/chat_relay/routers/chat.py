from fastapi import APIRouter, Depends, Request

from chat_relay.core.errors import SessionNotFoundError, ValidationError
from chat_relay.core.responses import error_response, failure
from chat_relay.deps.services import get_chat_service
from chat_relay.services.chat_service import ChatService
from chat_relay.stores.chat_history import now_iso


router = APIRouter(prefix="/api", tags=["Chat"])


@router.post("/chat")
async def chat_endpoint(request: Request, service: ChatService = Depends(get_chat_service)):
    try:
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError(["Request body must be valid JSON"])
        if not isinstance(body, dict):
            raise ValidationError(["Request body must be a JSON object"])
        reply = await service.send(body.get("message"), body.get("aiModel"), body.get("chatId"))
        return reply.to_dict()
    except Exception as exc:
        return error_response(exc, "Error generating content")


@router.get("/chats")
async def list_chats(service: ChatService = Depends(get_chat_service)):
    try:
        return {"success": True, "chats": await service.list_chats()}
    except Exception as exc:
        return error_response(exc, "Error fetching chats", server_error="Failed to fetch chats")


@router.get("/chat/{chat_id}")
async def get_chat(chat_id: str, service: ChatService = Depends(get_chat_service)):
    try:
        chat = await service.get_chat(chat_id)
        return {"success": True, "chat": chat.to_dict()}
    except SessionNotFoundError:
        return failure(404, "Chat not found")
    except Exception as exc:
        return error_response(exc, "Error fetching chat", server_error="Failed to fetch chat")


@router.delete("/chat/{chat_id}")
async def delete_chat(chat_id: str, service: ChatService = Depends(get_chat_service)):
    try:
        await service.delete_chat(chat_id)
        return {"success": True, "message": "Chat deleted successfully", "timestamp": now_iso()}
    except SessionNotFoundError:
        return failure(404, "Chat not found")
    except Exception as exc:
        return error_response(exc, "Error deleting chat", server_error="Failed to delete chat")
