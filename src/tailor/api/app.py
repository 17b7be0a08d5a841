from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tailor.api.routes import router as api_router
from tailor.config import get_settings
from tailor.core.session import TailoringSession
from tailor.errors import ConfirmationRequired, NotFound, PersistenceError, StorageQuotaExceeded, ValidationFailed

logger = logging.getLogger(__name__)


def create_app(session: TailoringSession | None = None) -> FastAPI:
    settings = get_settings()

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.session = session or TailoringSession(settings=settings)

    @app.exception_handler(ConfirmationRequired)
    async def _confirmation_required(request: Request, exc: ConfirmationRequired) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc), "confirmation_required": True})

    @app.exception_handler(ValidationFailed)
    async def _validation_failed(request: Request, exc: ValidationFailed) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(NotFound)
    async def _not_found(request: Request, exc: NotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(PersistenceError)
    async def _persistence_error(request: Request, exc: PersistenceError) -> JSONResponse:
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        status = 507 if isinstance(exc, StorageQuotaExceeded) else 503
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await app.state.session.aclose()

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    return app
