"""
School Directory Backend — FastAPI Application Factory
========================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (uvicorn school_directory.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌─────────────────┐ ┌──────┐ ┌─────┐  │
    │  │ Req ID   │→│  Logging        │→│ GZip │→│CORS │  │
    │  └──────────┘ └─────────────────┘ └──────┘ └─────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────────┐ ┌──────────────┐ ┌─────────┐  │
    │  │ /api/schools     │ │/schoolImages │ │ /health │  │
    │  └──────────────────┘ └──────────────┘ └─────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌───────────────────────────────────────────────┐  │
    │  │ Validation→400 │ NotFound→404 │ Storage/DB→500│  │
    │  └───────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config check → storage backend report
    Shutdown: dispose database engine
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

from school_directory import __version__
from school_directory.config import settings
from school_directory.database import dispose_engine
from school_directory.exceptions import (
    NotFoundError,
    RecordStoreError,
    SchoolDirectoryError,
    StorageWriteError,
    ValidationError,
)
from school_directory.middleware.logging import RequestLoggingMiddleware
from school_directory.middleware.request_id import RequestIDMiddleware, request_id_var
from school_directory.routes import health, schools
from school_directory.services.school_service import school_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # Third-party libraries log every operation at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("School Directory backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: list/fetch still work, and /health reports storage as unavailable
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    store = school_service.files.blob_store
    logger.info("Image storage backend: %s", store.name)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("School Directory backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(message: str, details: Optional[object] = None) -> dict:
    return {
        "error": message,
        "details": details,
        "request_id": request_id_var.get(""),
    }


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes.

    Handler hierarchy:
        ValidationError / RequestValidationError → 400
        NotFoundError                            → 404
        StorageWriteError                        → 500 (details name the storage failure)
        RecordStoreError                         → 500 (details name the database failure)
        SchoolDirectoryError (base)              → 500
        Exception (fallback)                     → 500, generic body, traceback logged
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=400, content=_error_body(exc.message, exc.details))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        # Malformed query parameters (e.g. ?id=abc, missing ?id=) are client errors too
        problems = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
        logger.warning("[%s] Request validation error: %s", request_id_var.get(""), problems)
        return JSONResponse(
            status_code=400,
            content=_error_body("Invalid request", "; ".join(problems)),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body(exc.message, exc.details))

    @app.exception_handler(StorageWriteError)
    async def handle_storage_error(request: Request, exc: StorageWriteError):
        logger.error(
            "[%s] Storage error: %s | %s | Context: %s",
            request_id_var.get(""), exc.message, exc.details, exc.context,
        )
        return JSONResponse(status_code=500, content=_error_body(exc.message, exc.details))

    @app.exception_handler(RecordStoreError)
    async def handle_record_store_error(request: Request, exc: RecordStoreError):
        logger.error(
            "[%s] Database error: %s | %s | Context: %s",
            request_id_var.get(""), exc.message, exc.details, exc.context,
        )
        return JSONResponse(status_code=500, content=_error_body(exc.message, exc.details))

    @app.exception_handler(SchoolDirectoryError)
    async def handle_app_error(request: Request, exc: SchoolDirectoryError):
        logger.error("[%s] Application error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=500, content=_error_body(exc.message, exc.details))

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
            content=_error_body("An unexpected error occurred. Please try again."),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="School Directory API",
        description="Create, list, update and delete schools, each with an uploaded image.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition:
    # RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(schools.router)
    app.include_router(schools.images_router)
    app.include_router(health.router)

    return app


app = create_app()
