import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from chat_relay.core.config import Settings, get_settings
from chat_relay.core.rate_limit import FixedWindowLimiter
from chat_relay.core.responses import failure, new_request_id
from chat_relay.deps.services import get_store
from chat_relay.routers import chat, health, prompt
from chat_relay.routers.health import ENDPOINTS


logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("chat_relay")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    # refuse to start without a key
    settings.require_api_key()
    await get_store().ensure_initialized()
    logger.info("Server started, environment: %s", settings.app_env)
    logger.info("Chat API: POST http://%s:%s/api/chat", settings.host, settings.port)
    yield


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Gemini Chat Relay API", version="1.0.0", lifespan=lifespan)

    limiter = FixedWindowLimiter(settings.rate_limit_max, settings.rate_limit_window_seconds)
    window_minutes = settings.rate_limit_window_seconds // 60

    # Later middleware wraps earlier middleware; CORS is added last so it sees every response.
    @app.middleware("http")
    async def catch_unhandled(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            request_id = new_request_id()
            logger.exception("Unhandled error [%s] on %s %s", request_id, request.method, request.url.path)
            return failure(500, "Something went wrong!", request_id=request_id)

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        if request.method != "OPTIONS" and request.url.path.startswith("/api/"):
            client = request.client.host if request.client else "unknown"
            if not limiter.hit(client):
                logger.warning("Rate limit exceeded for %s", client)
                return failure(
                    429,
                    "Too many requests from this IP, please try again later.",
                    retryAfter=f"{window_minutes} minutes",
                )
        return await call_next(request)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def not_found(request: Request, exc: StarletteHTTPException):
        if exc.status_code != 404:
            return await http_exception_handler(request, exc)
        logger.info("404 - Route not found: %s %s", request.method, request.url.path)
        return failure(
            404,
            "Endpoint not found",
            requestedPath=request.url.path,
            availableEndpoints=list(ENDPOINTS),
        )

    # only reached for errors raised outside the middleware above
    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        request_id = new_request_id()
        logger.exception("Unhandled error [%s] on %s %s", request_id, request.method, request.url.path)
        return failure(500, "Something went wrong!", request_id=request_id)

    app.include_router(health.router)
    app.include_router(chat.router)
    app.include_router(prompt.router)
    return app


app = create_app()
