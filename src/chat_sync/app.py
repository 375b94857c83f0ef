from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chat_sync.api.middleware.correlation_id import CorrelationIdMiddleware
from chat_sync.api.middleware.metrics import RequestTimingMiddleware
from chat_sync.api.v1.routers import conversations, health, messages, ws
from chat_sync.application.dto.options import EngineOptions
from chat_sync.application.dto.principal import Principal
from chat_sync.application.exceptions import (
    ConflictError,
    ForbiddenError,
    MalformedPayloadError,
    MentorshipEndedError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from chat_sync.config import settings
from chat_sync.infrastructure.api.http_chat_api import (
    HttpChatApi,
    HttpMentorshipApi,
    create_http_client,
)
from chat_sync.infrastructure.push.socketio_transport import SocketIoPushTransport
from chat_sync.infrastructure.ws.manager import ConnectionManager
from chat_sync.services.chat_session import ChatSession
from chat_sync.services.session_registry import SessionRegistry
from chat_sync.state.presence import PresenceStore

logger = logging.getLogger(__name__)


def build_registry(app: FastAPI) -> SessionRegistry:
    """Session factory wiring the real adapters to the shared app state."""
    options = EngineOptions.from_settings(settings)

    def factory(principal: Principal) -> ChatSession:
        client = app.state.http_client
        push = SocketIoPushTransport(
            settings.push_url,
            namespace=settings.PUSH_NAMESPACE,
            socketio_path=settings.PUSH_SOCKETIO_PATH,
            reconnection_attempts=settings.PUSH_RECONNECT_ATTEMPTS,
            reconnection_delay=settings.PUSH_RECONNECT_DELAY,
        )
        return ChatSession(
            principal,
            HttpChatApi(client, principal.token),
            HttpMentorshipApi(client, principal.token),
            push,
            app.state.presence,
            app.state.ws_manager,
            options,
        )

    return SessionRegistry(factory)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.http_client = create_http_client(settings.CHAT_API_URL, settings.CHAT_API_TIMEOUT)
    app.state.presence = PresenceStore()
    app.state.ws_manager = ConnectionManager()
    app.state.registry = build_registry(app)
    logger.info("Chat API client created for %s", settings.CHAT_API_URL)

    yield

    await app.state.registry.close_all()
    await app.state.http_client.aclose()
    logger.info("Chat sessions closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Mentorship Chat Sync",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(MentorshipEndedError)
    async def _read_only(_req: Request, exc: MentorshipEndedError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail, "notice": exc.notice})

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(MalformedPayloadError)
    async def _malformed(_req: Request, exc: MalformedPayloadError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(UpstreamError)
    async def _upstream(_req: Request, exc: UpstreamError) -> JSONResponse:
        return JSONResponse(
            status_code=502,
            content={"detail": exc.detail, "upstream_status": exc.status_code},
        )
