from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from social_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from social_chat.api.middleware.metrics import RequestTimingMiddleware
from social_chat.api.v1.routers import chats, health, ws
from social_chat.application.exceptions import (
    AuthError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from social_chat.application.uow import UoWFactory
from social_chat.config import settings
from social_chat.infrastructure.ws.hub import ChatHub
from social_chat.infrastructure.ws.presence import InMemoryPresenceRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    presence = InMemoryPresenceRegistry()
    app.state.presence = presence
    app.state.hub = ChatHub(
        presence,
        app.state.uow_factory,
        enforce_join_participancy=settings.WS_ENFORCE_JOIN_PARTICIPANCY,
    )
    logger.info("Chat hub started")

    yield

    await app.state.hub.shutdown()
    presence.clear()
    if app.state.dispose_engine:
        from social_chat.infrastructure.db.session import engine

        await engine.dispose()
    logger.info("Chat hub stopped")


def create_app(uow_factory: UoWFactory | None = None) -> FastAPI:
    app = FastAPI(
        title="Social Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    if uow_factory is None:
        from social_chat.infrastructure.db.uow import sqlalchemy_uow

        uow_factory = sqlalchemy_uow
        app.state.dispose_engine = True
    else:
        app.state.dispose_engine = False
    app.state.uow_factory = uow_factory

    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(chats.router)
    app.include_router(ws.router)

    return app


def _error(status_code: int, message: str, **extra: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def _bad_request(_req: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request")
        return _error(400, f"{field}: {message}" if field else message)

    @app.exception_handler(AuthError)
    async def _unauthorized(_req: Request, exc: AuthError) -> JSONResponse:
        return _error(401, exc.detail)

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return _error(403, exc.detail)

    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, exc.detail)

    @app.exception_handler(Exception)
    async def _unexpected(req: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", req.method, req.url.path)
        return _error(500, "Internal server error", error=str(exc))
