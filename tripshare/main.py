"""
TripShare Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes middleware registration, route mounting, error mapping,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn tripshare.main:app).

Error mapping:
    ValidationError          → 400
    UnauthenticatedError     → 401
    NotFoundError            → 404
    TransientStoreError      → 500 (logged ERROR)
    InvariantViolationError  → 500 (logged CRITICAL on tripshare.invariants)
    DatabaseError            → 500
    Exception (fallback)     → 500

    5xx bodies never include exception context; it is logged server-side.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from tripshare.config import settings
from tripshare.database import dispose_engine
from tripshare.exceptions import (
    DatabaseError,
    InvariantViolationError,
    NotFoundError,
    TransientStoreError,
    TripShareError,
    UnauthenticatedError,
    ValidationError,
)
from tripshare.middleware.logging import RequestLoggingMiddleware
from tripshare.middleware.request_id import RequestIDMiddleware, request_id_var
from tripshare.routes import community, engagement, health

logger = logging.getLogger(__name__)

# Separate logger so alerting can key on it: a hit here means the like
# counter was written outside the coordinator
invariant_logger = logging.getLogger("tripshare.invariants")

_GENERIC_FAILURE = "An internal error occurred. Please try again later."


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Called once during app startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("TripShare community backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks still work and requests get 401s
        logger.error("Configuration error: %s", str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    logger.info("TripShare community backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _server_error(rid: str, error: str = "server_error") -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": error, "message": _GENERIC_FAILURE, "request_id": rid},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Maps exception types to HTTP status codes and response bodies."""

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(UnauthenticatedError)
    async def handle_unauthenticated(request: Request, exc: UnauthenticatedError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=401,
            content={
                "error": "unauthenticated",
                "message": exc.message,
                "request_id": rid,
            },
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(TransientStoreError)
    async def handle_transient_store_error(request: Request, exc: TransientStoreError):
        rid = request_id_var.get("")
        logger.error("[%s] Transient storage failure: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={"error": "transient_failure", "message": exc.message, "request_id": rid},
        )

    @app.exception_handler(InvariantViolationError)
    async def handle_invariant_violation(request: Request, exc: InvariantViolationError):
        rid = request_id_var.get("")
        invariant_logger.critical(
            "[%s] Invariant violation: %s | Context: %s", rid, exc.message, exc.context
        )
        return _server_error(rid)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return _server_error(rid)

    @app.exception_handler(TripShareError)
    async def handle_app_error(request: Request, exc: TripShareError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return _server_error(rid)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return _server_error(rid, error="internal_server_error")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="TripShare Community API",
        description=(
            "Community posts for the trip planner, with a like toggle whose "
            "counter always matches the stored likes."
        ),
        version="1.0.0",
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
        expose_headers=["X-Request-ID", "X-Total-Count"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(engagement.router)
    app.include_router(community.router)
    app.include_router(health.router)

    return app


app = create_app()
