"""
Quotebook Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application.
How:   create_app() registers middleware, exception handlers and routers, and
       attaches the ServiceContainer (built by the lifespan from settings, or
       supplied by the caller).
Who:   uvicorn (`uvicorn quotebook.main:app`) and the test suite
       (`create_app(services=...)`).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │  Middleware:  Request ID → Access Log → CORS → GZip      │
    │                                                          │
    │  Routes:  /api/auth  /api/quotes  /api/feed              │
    │           /api/favorites  /api/collections               │
    │           /api/preferences  /health                      │
    │                                                          │
    │  app.state.services: ServiceContainer                    │
    │     gateway · session store · auth · quotes · prefs      │
    │                                                          │
    │  Exception Handlers:                                     │
    │     ValidationError→400  NotAuthenticated→401            │
    │     ApiError→502  PreferenceStorage→500  other→500       │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config check → build services → restore the
              remembered session
    Shutdown: close the gateway's HTTP connection pool
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from quotebook import __version__
from quotebook.config import settings
from quotebook.exceptions import (
    ApiError,
    NotAuthenticatedError,
    PreferenceStorageError,
    QuotebookError,
    ValidationError,
)
from quotebook.middleware.logging import RequestLoggingMiddleware
from quotebook.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var
from quotebook.routes import auth, collections, favorites, health, preferences, quotes
from quotebook.services.container import ServiceContainer

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger for the whole application.

    Format: 2026-01-15T12:00:00 [INFO] quotebook.services.auth_service: User 42 signed in

    Third-party loggers that report every connection are capped at WARNING.
    """
    logging.basicConfig(
        level=getattr(logging, level or settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    for noisy in ("uvicorn.access", "httpcore", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy onto HTTP responses.

        ValidationError family   → 400 (error = the subclass code)
        NotAuthenticatedError    → 401
        ApiError family          → 502, backend message verbatim
        PreferenceStorageError   → 500
        QuotebookError (other)   → 500
        Exception                → 500, generic message, traceback logged
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, exc.code, exc.message, exc.context)

    @app.exception_handler(NotAuthenticatedError)
    async def handle_not_authenticated(request: Request, exc: NotAuthenticatedError):
        return _error_response(401, exc.code, exc.message)

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        logger.error(
            "[%s] Backend error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context
        )
        details = {"status_code": exc.status_code} if exc.status_code is not None else None
        return _error_response(502, exc.code, exc.message, details)

    @app.exception_handler(PreferenceStorageError)
    async def handle_storage_error(request: Request, exc: PreferenceStorageError):
        # The file path stays in the log, not in the response
        logger.error(
            "[%s] Preference storage error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return _error_response(500, exc.code, exc.message)

    @app.exception_handler(QuotebookError)
    async def handle_quotebook_error(request: Request, exc: QuotebookError):
        logger.error("[%s] %s: %s", request_id_var.get(""), type(exc).__name__, exc.message)
        return _error_response(500, exc.code, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), exc, exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(services: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Pre-built services (tests). When omitted, the lifespan
            builds them from `settings` and closes them on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging()
        logger.info("Quotebook backend %s starting up...", __version__)

        try:
            settings.validate_required_for_production()
        except ValueError as e:
            # Keep serving: /health and the local preference routes still work
            logger.error("Configuration error: %s", e)

        owned = getattr(app.state, "services", None) is None
        if owned:
            app.state.services = ServiceContainer.from_settings(settings)

        container: ServiceContainer = app.state.services
        restored = await container.auth.restore()
        logger.info("Remembered session %s", "restored" if restored else "not found")
        logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

        yield

        logger.info("Quotebook backend shutting down...")
        if owned:
            await container.aclose()
        logger.info("Shutdown complete.")

    app = FastAPI(
        title="Quotebook API",
        description=(
            "Quote browsing, favorites, collections and account management "
            "on top of a Supabase backend."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    # Last added runs first: Request ID → Access Log → CORS → GZip
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(quotes.router)
    app.include_router(favorites.router)
    app.include_router(collections.router)
    app.include_router(preferences.router)
    app.include_router(health.router)

    return app


app = create_app()
