"""
Project Gallery Backend — FastAPI Application Factory
=======================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the per-app resources (database handle, storage
       backend, upload receiver, login service) onto `app.state`, registers
       middleware, exception handlers and routers, and returns the app.
Who:   uvicorn (`uvicorn app.main:app`) and the test suite
       (`create_app(test_settings)`).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                         │
    │                                                           │
    │  Middleware:  Request ID → Logging → Body Limit → GZip    │
    │               → CORS                                      │
    │                                                           │
    │  Routes:      /projects  /projects-with-gallery           │
    │               /projects/{id}/gallery  /gallery            │
    │               /login  /uploads/{name}  /health            │
    │                                                           │
    │  Handlers:    Validation/Upload→400  Auth→401  NotFound→404│
    │               TooLarge→413  Database/Storage/other→500    │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config checks → database probe (retried)
              → create tables (DB_CREATE_TABLES) → admin bootstrap
    Shutdown: dispose the engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import Settings, settings as default_settings
from app.database import Database
from app.exceptions import (
    AuthenticationError,
    DatabaseError,
    FileStorageError,
    GalleryAppError,
    NotFoundError,
    PayloadTooLargeError,
    UploadError,
    ValidationError,
)
from app.middleware.body_limit import BodySizeLimitMiddleware
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import auth, files, gallery, health, projects
from app.services.auth_service import AuthService
from app.services.storage import build_storage
from app.services.upload_receiver import UploadReceiver

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str) -> None:
    """
    Configure the root logger once at startup.

    Format: 2024-01-15T12:00:00 [INFO] app.services.gallery_service: message
    """
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    database: Database = app.state.database

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("Project Gallery Backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        raise

    await database.wait_until_ready()

    if settings.db_create_tables:
        await database.create_all()

    if settings.admin_username and settings.admin_password:
        async with database.session_factory() as session:
            await app.state.auth_service.ensure_user(
                session, settings.admin_username, settings.admin_password
            )

    logger.info("Image storage: %s", app.state.storage.name)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Project Gallery Backend shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details: Optional[dict] = None) -> dict:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return content


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP statuses and the shared error body.

        ValidationError / UploadError  → 400
        RequestValidationError         → 400 (malformed body or path param)
        AuthenticationError            → 401
        NotFoundError                  → 404
        PayloadTooLargeError           → 413
        DatabaseError                  → 500
        FileStorageError               → 500
        GalleryAppError (other)        → 500
        Exception (fallback)           → 500

    Driver error text is logged, and only returned to the client when
    EXPOSE_ERROR_DETAILS is enabled.
    """

    def expose(request: Request) -> bool:
        return request.app.state.settings.expose_error_details

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(UploadError)
    async def handle_upload_error(request: Request, exc: UploadError):
        logger.warning("[%s] Upload rejected: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("upload_error", exc.message, exc.context),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        logger.warning("[%s] Invalid request: %s", request_id_var.get(""), errors)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", "Invalid request", {"errors": errors}),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content=_error_body("authentication_error", exc.message),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message),
        )

    @app.exception_handler(PayloadTooLargeError)
    async def handle_payload_too_large(request: Request, exc: PayloadTooLargeError):
        return JSONResponse(
            status_code=413,
            content=_error_body("payload_too_large", exc.message, exc.context),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "server_error",
                exc.message,
                exc.context if expose(request) else None,
            ),
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "server_error",
                exc.message,
                exc.context if expose(request) else None,
            ),
        )

    @app.exception_handler(GalleryAppError)
    async def handle_app_error(request: Request, exc: GalleryAppError):
        logger.error("[%s] %s: %s", request_id_var.get(""), type(exc).__name__, exc.message)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", exc.message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
                {"error": str(exc)} if expose(request) else None,
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Assemble the application.

    Args:
        settings: Configuration to run with. Defaults to the environment-
                  loaded module settings; tests pass their own.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="Project Gallery API",
        description=(
            "Manage client projects and their image galleries. Images are "
            "stored on disk or inline in the database, and every change keeps "
            "the stored content and the gallery rows consistent."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Per-app resources ─────────────────────────────────────────────────
    app.state.settings = settings
    app.state.database = Database(settings)
    app.state.storage = build_storage(settings)
    app.state.upload_receiver = UploadReceiver.from_settings(settings)
    app.state.auth_service = AuthService(settings)

    # ── Middleware (last added runs first) ────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_json_body_size)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(projects.router)
    app.include_router(gallery.router)
    app.include_router(auth.router)
    app.include_router(health.router)
    if app.state.storage.name == "filesystem":
        app.include_router(files.create_router(settings.uploads_url_prefix))

    return app


app = create_app()
