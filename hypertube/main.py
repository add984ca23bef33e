"""
Hypertube API — FastAPI Application Factory
============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app(settings) builds the AppContext, the middleware chain, the
       fault handlers and the routers, and returns the app.
Who:   uvicorn (hypertube.main:app) and the test suite (create_app(settings)).

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware Chain:                                           │
    │  Req ID → Logging → GZip → Security Headers                  │
    │         → Body Parser → Validation → Session                 │
    │                                                              │
    │  Routes:                                                     │
    │  GET  /api/movie/info/{idImdb}   POST /api/auth/login        │
    │  POST /api/user/picture          POST /api/auth/logout       │
    │  GET  /health                                                │
    │                                                              │
    │  Fault Handlers:                                             │
    │  AuthRequired→401 │ StoreUnavailable→503 │ others→500        │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging
    2. Validate configuration (a missing secret is logged, not fatal)
    3. Create upload directories
    4. Start the session expiry sweeper

    Shutdown:
    1. Cancel the sweeper
    2. Dispose the engine
"""

import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from hypertube import __version__
from hypertube.config import Settings
from hypertube.context import AppContext
from hypertube.exceptions import (
    AuthenticationRequiredError,
    FileStorageError,
    HypertubeError,
    IdentityNotFoundError,
    StoreUnavailableError,
)
from hypertube.middleware.body_parser import BodyParserMiddleware
from hypertube.middleware.logging import RequestLoggingMiddleware
from hypertube.middleware.request_id import RequestIDMiddleware, request_id_var
from hypertube.middleware.security_headers import SECURITY_HEADERS, SecurityHeadersMiddleware
from hypertube.middleware.session import SessionMiddleware
from hypertube.middleware.validation import ValidationMiddleware
from hypertube.routes import auth, health, movie, user
from hypertube.schemas.envelope import fault_response

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: 2024-01-15T12:00:00 [INFO] hypertube.access: GET /api/... 200 3.1ms
    When:   Once, at the start of the lifespan.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    # Per-operation chatter from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    context: AppContext = app.state.context
    settings = context.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("Hypertube API %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving; health checks and logs show the problem
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    for directory in (settings.upload_staging_dir, settings.uploads_dir):
        path = Path(directory)
        path.mkdir(parents=True, exist_ok=True)
        logger.info("Upload directory: %s", path.resolve())

    sweeper = asyncio.create_task(context.sessions.run_sweeper())

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Hypertube API shutting down...")

    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper

    await context.close()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Fault Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map infrastructure exceptions to fault responses.

    Handler hierarchy:
        AuthenticationRequiredError → 401
        StoreUnavailableError       → 503 (Retry-After)
        IdentityNotFoundError       → 500
        FileStorageError            → 500
        HypertubeError (base)       → 500
        Exception (fallback)        → 500

    Domain failures never get here: they are returned as 200 Envelopes.
    Bodies keep the Envelope's `error` list; details stay in the logs.
    """

    @app.exception_handler(AuthenticationRequiredError)
    async def handle_auth_required(request: Request, exc: AuthenticationRequiredError):
        return fault_response(401, exc.param, exc.msg, exc.message)

    @app.exception_handler(StoreUnavailableError)
    async def handle_store_unavailable(request: Request, exc: StoreUnavailableError):
        rid = request_id_var.get("")
        logger.error(
            "[%s] Store unavailable: %s | Context: %s",
            rid,
            exc.message,
            exc.context,
            exc_info=exc.__cause__ or exc,
        )
        return fault_response(
            503,
            exc.param,
            exc.msg,
            exc.message,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(IdentityNotFoundError)
    async def handle_identity_not_found(request: Request, exc: IdentityNotFoundError):
        rid = request_id_var.get("")
        logger.error("[%s] Identity vanished: %s | Context: %s", rid, exc.message, exc.context)
        return fault_response(500, exc.param, exc.msg, exc.message)

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        return fault_response(500, exc.param, exc.msg, exc.message)

    @app.exception_handler(HypertubeError)
    async def handle_hypertube_error(request: Request, exc: HypertubeError):
        rid = request_id_var.get("")
        logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        return fault_response(
            500,
            exc.param,
            exc.msg,
            "An internal error occurred. Please try again later.",
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Catch-all for truly unexpected errors.

        Starlette answers these outside the middleware chain, so the security
        headers and request id are added here.
        """
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return fault_response(
            500,
            "server",
            "error.internal",
            "An unexpected error occurred. Please try again or contact support.",
            headers={**SECURITY_HEADERS, "X-Request-ID": rid},
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: defaults to Settings() read from the environment
        context:  a prebuilt AppContext (tests); built from settings otherwise
    """
    if context is None:
        context = AppContext.from_settings(settings or Settings())

    app = FastAPI(
        title="Hypertube API",
        description="Session-authenticated movie lookup API.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.context = context

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first. Execution order:
    # RequestID → Logging → GZip → SecurityHeaders → BodyParser → Validation → Session
    app.add_middleware(SessionMiddleware, context=context)
    app.add_middleware(ValidationMiddleware)
    app.add_middleware(BodyParserMiddleware, max_body_size=context.settings.max_body_size)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(movie.router)
    app.include_router(auth.router)
    app.include_router(user.router)
    app.include_router(health.router)

    return app


# uvicorn hypertube.main:app
app = create_app()
