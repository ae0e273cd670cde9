"""
RecipeBox — Application Assembly
================================

What:  Builds the ASGI app: middleware, error envelope, routers, optional
       front end. `uvicorn recipebox.main:app` serves the module-level app.

Request path (outermost first):
    RateLimit → RequestID → access log → GZip → CORS → router

Routers:
    /api/v1   auth · app · recipes · images · notes · links · tags
              uploads · users · backups
    /         health · uploads/* file server · STATIC_ROOT front end

Startup prepares logging, storage directories, the schema and the first
admin account. Shutdown closes the connection pool.
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from recipebox import __version__
from recipebox.config import settings
from recipebox.database import async_session_factory, dispose_engine, init_database
from recipebox.exceptions import (
    AuthenticationError,
    DatabaseError,
    RateLimitExceededError,
    RecipeBoxError,
    ValidationError,
)
from recipebox.middleware.logging import RequestLoggingMiddleware
from recipebox.middleware.rate_limit import RateLimitMiddleware
from recipebox.middleware.request_id import RequestIDMiddleware, request_id_var
from recipebox.routes import (
    app_config,
    auth,
    backups,
    health,
    images,
    links,
    notes,
    recipes,
    tags,
    uploads,
    users,
)
from recipebox.services.user_service import user_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Root logger to stdout at LOG_LEVEL; noisy third-party loggers held at WARNING."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-statement and per-request chatter
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("RecipeBox %s starting (database driver: %s)", __version__, settings.resolved_database_driver)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving; an operator may be mid-setup
        logger.warning("Insecure configuration: %s", e)

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())

    await init_database()

    async with async_session_factory() as session:
        await user_service.ensure_initial_admin(session)
        await session.commit()

    logger.info("Listening on %s:%d", settings.backend_host, settings.backend_port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    await dispose_engine()
    logger.info("RecipeBox stopped")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(exc: RecipeBoxError, message=None, details=None, headers=None) -> JSONResponse:
    content = {
        "error": exc.error_code,
        "message": message or exc.message,
        "request_id": request_id_var.get(""),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Render RecipeBoxError subclasses as the JSON error envelope.

    Starlette picks the handler registered for the closest class in the
    exception's MRO, so the generic RecipeBoxError handler covers
    validation, forbidden, not-found and storage errors while the classes
    below it add headers or hide detail. Anything else is a 500 whose
    traceback goes to the log only.
    """

    @app.exception_handler(RecipeBoxError)
    async def handle_recipebox_error(request: Request, exc: RecipeBoxError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | %s", rid, type(exc).__name__, exc.message, exc.context)
            return _error_response(exc)
        if exc.status_code == 403:
            logger.warning("[%s] Forbidden: %s %s", rid, request.method, request.url.path)
        elif exc.status_code == 400:
            logger.warning("[%s] Rejected input: %s", rid, exc.message)
        details = exc.context if isinstance(exc, ValidationError) else None
        return _error_response(exc, details=details)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error_response(exc, headers={"WWW-Authenticate": "Bearer"})

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(exc, details=exc.context, headers={"Retry-After": str(exc.retry_after)})

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database failure | %s", request_id_var.get(""), exc.context)
        return _error_response(exc, message=DatabaseError.default_message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unhandled %s: %s", request_id_var.get(""), type(exc).__name__, exc, exc_info=True)
        return _error_response(RecipeBoxError())


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Assemble middleware, error handlers, routers and the optional front end."""
    app = FastAPI(
        title="RecipeBox API",
        description="Recipe manager: search, images, notes, links, users and backups.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Last added runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After", "Location"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    for module in (auth, app_config, recipes, images, notes, links, tags, uploads, users, backups, health):
        app.include_router(module.router)

    # Mounted last so API routes always win
    if settings.static_root:
        static_dir = Path(settings.static_root)
        if static_dir.is_dir():
            app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
            logger.info("Serving front end from %s", static_dir.resolve())
        else:
            logger.warning("STATIC_ROOT %s is not a directory; front end disabled", static_dir)

    return app


app = create_app()
