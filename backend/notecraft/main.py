"""
NoteCraft Backend — FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   ``create_app()`` returns a configured FastAPI instance; the module-level
       ``app`` is what uvicorn serves (``uvicorn notecraft.main:app``).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain (outermost first):                │
    │  ┌──────┐ ┌────────┐ ┌─────────┐ ┌──────────────┐   │
    │  │ CORS │→│ Req ID │→│ Logging │→│ Session      │   │
    │  └──────┘ └────────┘ └─────────┘ └──────────────┘   │
    │                                                     │
    │  Routes:                                            │
    │  /api/auth/user   /api/notes[/{id}]   /health       │
    │                                                     │
    │  Exception Handlers:                                │
    │  Validation→400 │ NotFound→404 │ Upstream→500 │ ... │
    └─────────────────────────────────────────────────────┘

Configuration is an explicit value: the factory builds (or receives) one
``Settings`` and an ``IdentityClientFactory`` and hangs both on ``app.state``.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from notecraft import __version__
from notecraft.config import Settings
from notecraft.exceptions import (
    ConfigMissingError,
    NotFoundError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
)
from notecraft.middleware.logging import RequestLoggingMiddleware
from notecraft.middleware.request_id import RequestIDMiddleware, request_id_var
from notecraft.middleware.session import SessionMiddleware, error_response
from notecraft.provider.identity import IdentityClientFactory
from notecraft.routes import auth, health, notes

logger = logging.getLogger(__name__)

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_HEADERS = ["Content-Type", "Authorization"]


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during app startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # These log every provider round-trip at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: logging, configuration check, banner.
    Shutdown: nothing to release; provider clients are closed per request.
    """
    settings: Settings = app.state.settings
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("NoteCraft Backend %s starting up...", __version__)

    # Missing credentials are reported, not fatal: /health keeps answering
    # and /api requests fail with ConfigMissingError.
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
    else:
        logger.info("Provider: %s (table=%s)", settings.supabase_url, settings.notes_table)

    logger.info("CORS origins: %s", ", ".join(settings.cors_origins_list))
    logger.info("=" * 60)

    yield

    logger.info("NoteCraft Backend shutting down...")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to ``{"error": message, "request_id": id}`` responses.

    Handler hierarchy:
        RequestValidationError → 400 "Invalid request body"
        ValidationError        → 400
        UnauthorizedError      → 401
        NotFoundError          → 404
        ConfigMissingError     → 500
        UpstreamError          → 500 (provider message passed through)
        Exception (fallback)   → 500 generic message
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Body is not JSON, not an object, or has wrongly typed fields."""
        rid = request_id_var.get("")
        logger.warning("[%s] Invalid request body: %d error(s)", rid, len(exc.errors()))
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body", "request_id": rid},
        )

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return error_response(exc)

    @app.exception_handler(UnauthorizedError)
    async def handle_unauthorized(request: Request, exc: UnauthorizedError):
        return error_response(exc)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return error_response(exc)

    @app.exception_handler(ConfigMissingError)
    async def handle_config_missing(request: Request, exc: ConfigMissingError):
        logger.error("[%s] %s", request_id_var.get(""), exc.message)
        return error_response(exc)

    @app.exception_handler(UpstreamError)
    async def handle_upstream_error(request: Request, exc: UpstreamError):
        logger.error(
            "[%s] Upstream error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return error_response(exc)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all; the traceback is logged server-side only."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "An unexpected error occurred", "request_id": rid},
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    identity_factory: Optional[IdentityClientFactory] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration; loaded from the environment when omitted.
        identity_factory: Builds the per-request provider client; defaults to
            one bound to ``settings``.
    """
    settings = settings or Settings()

    app = FastAPI(
        title="NoteCraft API",
        description="Personal notes behind delegated authentication.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.identity_factory = identity_factory or IdentityClientFactory(settings)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: CORS → RequestID → Logging → Session
    app.add_middleware(SessionMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
        expose_headers=["X-Request-ID"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(notes.router)
    app.include_router(health.router)

    return app


app = create_app()


def run() -> None:
    """Serve ``app`` on BACKEND_HOST:BACKEND_PORT (the ``notecraft`` console script)."""
    settings: Settings = app.state.settings
    uvicorn.run(
        "notecraft.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )
