from __future__ import annotations

import logging
import time
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from letterbox.api.deps import LoginRequired
from letterbox.api.routes import admin, health, login, newsletters, subscriptions
from letterbox.app_shell.config import load_settings
from letterbox.app_shell.context import ServiceContext

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def create_app(context: ServiceContext) -> FastAPI:
    """Build the application around an already-constructed ServiceContext."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        logger.info("Letterbox starting (base_url=%s)", context.settings.application.base_url)
        yield
        context.close()
        logger.info("Letterbox stopped")

    app = FastAPI(
        title="Letterbox",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )
    app.state.context = context

    # --- Routers ---
    app.include_router(health.router, tags=["Health"])
    app.include_router(login.router, tags=["Login"])
    app.include_router(subscriptions.router, tags=["Subscriptions"])
    app.include_router(newsletters.router, tags=["Newsletters"])
    app.include_router(admin.router, tags=["Admin"])

    # --- Error mapping ---
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Malformed request", "errors": _error_locations(exc)},
        )

    @app.exception_handler(LoginRequired)
    async def login_required_handler(request: Request, exc: LoginRequired) -> RedirectResponse:
        return RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)

    # --- Request logging ---
    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "request_id=%s %s %s -> %d (%.1f ms)",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    return app


def _error_locations(exc: RequestValidationError) -> list[str]:
    # Field locations only; input values may be passwords.
    return [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]


def create_app_from_environment() -> FastAPI:
    """uvicorn factory: ``uvicorn --factory letterbox.api.main:create_app_from_environment``"""
    return create_app(ServiceContext.create(load_settings()))
