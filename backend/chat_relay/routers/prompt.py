import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from chat_relay.deps.services import get_gemini_client
from chat_relay.services.gemini_service import GeminiClient
from chat_relay.stores.chat_history import now_iso
from chat_relay.utils.validation import validate_prompt


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Legacy"])


@router.post("/prompt")
async def prompt_endpoint(request: Request, client: GeminiClient = Depends(get_gemini_client)):
    """Stateless single-shot prompt; nothing is persisted."""
    try:
        body = await request.json()
    except ValueError:
        body = None
    prompt = body.get("prompt") if isinstance(body, dict) else None
    if not validate_prompt(prompt):
        return JSONResponse(status_code=400, content={"error": "Valid prompt is required"})
    try:
        text = await run_in_threadpool(client.generate_blocking, prompt.strip())
    except Exception as exc:
        logger.error("Error in /prompt endpoint: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "timestamp": now_iso()},
        )
    return {"message": text.strip(), "timestamp": now_iso()}
