from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .database import init_db
from .services.errors import (
    AttendanceLockedError,
    InvalidTargetingError,
    InvalidVoiceAssignmentError,
    NotFoundError,
    NotPermittedError,
)

from .api.choirs import router as choirs_router
from .api.voices import router as voices_router
from .api.members import router as members_router
from .api.events import router as events_router
from .api.feed import router as feed_router
from .api.chats import router as chats_router

logger = logging.getLogger(__name__)


def _error(status_code: int, detail: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Choir Hub API",
        version=settings.app_version,
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Startup ---
    @app.on_event("startup")
    def _startup() -> None:
        # Creates tables for all registered SQLModel models (idempotent)
        init_db()

    # --- Error envelope ---
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return _error(exc.status_code, exc.detail)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(InvalidTargetingError)
    async def invalid_targeting_handler(request: Request, exc: InvalidTargetingError) -> JSONResponse:
        return _error(422, {"message": str(exc), "unknown_ids": exc.unknown})

    @app.exception_handler(InvalidVoiceAssignmentError)
    async def invalid_voice_handler(request: Request, exc: InvalidVoiceAssignmentError) -> JSONResponse:
        return _error(422, str(exc))

    @app.exception_handler(NotPermittedError)
    async def not_permitted_handler(request: Request, exc: NotPermittedError) -> JSONResponse:
        return _error(403, str(exc))

    @app.exception_handler(AttendanceLockedError)
    async def locked_handler(request: Request, exc: AttendanceLockedError) -> JSONResponse:
        return _error(409, str(exc))

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        logger.info("rejected request %s %s: %s", request.method, request.url.path, exc)
        return _error(400, str(exc))

    # --- Health / meta ---
    @app.get("/health", tags=["meta"])
    def health() -> Dict[str, Any]:
        return {"ok": True, "env": settings.env}

    @app.get("/version", tags=["meta"])
    def version() -> Dict[str, Any]:
        return {"name": settings.app_name, "version": settings.app_version}

    # --- API routers ---
    app.include_router(choirs_router)
    app.include_router(voices_router)
    app.include_router(members_router)
    app.include_router(events_router)
    app.include_router(feed_router)
    app.include_router(chats_router)

    return app


app = create_app()


def run() -> None:
    logging.basicConfig(level=getattr(logging, str(settings.log_level).upper(), logging.INFO))
    import uvicorn

    # NOTE: init_db is handled by the FastAPI startup hook.
    uvicorn.run(
        "choirhub.main:app",
        host=settings.host,
        port=int(settings.port),
        reload=bool(settings.reload),
    )
