# src/duet/main.py
"""Main entry point for the Duet application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from duet import __version__
from duet.api.v1 import conversations_router
from duet.core.errors import (
    ChatError,
    Forbidden,
    InternalError,
    InvalidArgument,
    MethodNotAllowed,
    NotFound,
    Unauthenticated,
)
from duet.core.logging_config import setup_logging
from duet.core.settings import settings
from duet.db.session import create_tables

setup_logging(settings)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description="Two-party direct messaging API",
    version=__version__,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(conversations_router, prefix="/api/v1")


@app.exception_handler(ChatError)
async def handle_chat_error(request: Request, exc: ChatError) -> JSONResponse:
    """Render domain errors as ``{"kind", "message"}`` payloads."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


HTTP_ERROR_KINDS: dict[int, type[ChatError]] = {
    status.HTTP_400_BAD_REQUEST: InvalidArgument,
    status.HTTP_401_UNAUTHORIZED: Unauthenticated,
    status.HTTP_403_FORBIDDEN: Forbidden,
    status.HTTP_404_NOT_FOUND: NotFound,
    status.HTTP_405_METHOD_NOT_ALLOWED: MethodNotAllowed,
}


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing and framework errors with the shared error payload."""
    error_class = HTTP_ERROR_KINDS.get(exc.status_code)
    if error_class is None:
        error_class = InternalError if exc.status_code >= 500 else InvalidArgument
    message = exc.detail if isinstance(exc.detail, str) else None
    error = error_class(message)
    return JSONResponse(
        status_code=exc.status_code,
        content=error.to_payload(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies with the shared error payload."""
    errors = exc.errors()
    field = None
    if errors:
        location = [str(part) for part in errors[0].get("loc", ()) if part != "body"]
        field = ".".join(location) or None
    error = InvalidArgument("Request validation failed", field=field)
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.exception_handler(SQLAlchemyError)
async def handle_storage_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Hide storage failures behind a generic internal error."""
    logger.error(
        "Storage failure on %s %s", request.method, request.url.path, exc_info=exc
    )
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.on_event("startup")
async def on_startup() -> None:
    if settings.auto_create_tables:
        create_tables()
        logger.info("Ensured database tables exist")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": f"{settings.app_name} API",
        "version": __version__,
        "description": "Two-party direct messaging API",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("duet.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
