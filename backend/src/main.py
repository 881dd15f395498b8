"""Document Management Backend - Main FastAPI Application

This module creates and configures the main FastAPI application, including:
- The documents lifecycle router
- Middleware (request ID correlation, CORS)
- Exception handlers mapping lifecycle errors to HTTP responses
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from config import get_settings
from domain.lifecycle import (
    ConcurrentModificationError,
    IllegalTransitionError,
    InconsistentHistoryError,
    LifecycleError,
    PermissionDeniedError,
    TerminalStateError,
    ValidationError,
    VersionOverflowError,
)
from documents.router import router as documents_router
from documents.service import DocumentNotFoundError, VersionNotFoundError
from observability import RequestIDMiddleware, configure_logging

settings = get_settings()

# Configure logging
configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)

# Lifecycle error -> HTTP status (most specific class wins)
LIFECYCLE_ERROR_STATUS = {
    IllegalTransitionError: status.HTTP_400_BAD_REQUEST,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    DocumentNotFoundError: status.HTTP_404_NOT_FOUND,
    VersionNotFoundError: status.HTTP_404_NOT_FOUND,
    TerminalStateError: status.HTTP_409_CONFLICT,
    ConcurrentModificationError: status.HTTP_409_CONFLICT,
    VersionOverflowError: status.HTTP_409_CONFLICT,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InconsistentHistoryError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for_error(exc: LifecycleError) -> int:
    for klass in type(exc).__mro__:
        if klass in LIFECYCLE_ERROR_STATUS:
            return LIFECYCLE_ERROR_STATUS[klass]
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Document Management API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    yield

    logger.info("Document Management API shutting down...")


_docs_enabled = settings.ENVIRONMENT != "production"

# Create FastAPI application
app = FastAPI(
    title="Document Management API",
    description="Controlled document lifecycle: workflow, versioning and permissions",
    version="0.1.0",
    docs_url="/docs" if _docs_enabled else None,
    redoc_url="/redoc" if _docs_enabled else None,
    openapi_url="/openapi.json" if _docs_enabled else None,
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE CONFIGURATION
# =============================================================================

# Request ID Middleware (must be first for proper correlation)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(LifecycleError)
async def lifecycle_exception_handler(
    request: Request,
    exc: LifecycleError
) -> JSONResponse:
    """Translate typed lifecycle errors into JSON bodies.

    Body always carries "detail" and "code"; permission errors add
    "reason_code", validation errors add "field" and "rule".
    """
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error(f"Lifecycle error on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors.

    Returns a structured error response with field-level details.
    """
    logger.warning(f"Validation error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "REQUEST_VALIDATION_ERROR",
            "detail": "Request validation failed",
            "errors": jsonable_errors(exc),
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Strip non-serialisable context (e.g. exception objects) from pydantic errors."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(
    request: Request,
    exc: IntegrityError
) -> JSONResponse:
    """Unique constraint races (e.g. two documents allocated the same code)."""
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "code": "CONCURRENT_MODIFICATION",
            "detail": "The request conflicted with a concurrent change. Please retry.",
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    """Handle database errors.

    Logs the full error but returns a generic message to prevent
    information leakage.
    """
    logger.error(
        f"Database error on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "DATABASE_ERROR",
            "detail": "A database error occurred. Please try again later.",
        },
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(documents_router, prefix="/api/v1")


# =============================================================================
# ROOT ENDPOINTS
# =============================================================================

@app.get("/", include_in_schema=False)
async def root() -> dict[str, Any]:
    """Root endpoint - API information."""
    return {
        "name": "Document Management API",
        "version": "0.1.0",
        "status": "running",
        "docs": "/docs" if _docs_enabled else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
