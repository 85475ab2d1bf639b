"""Main application entrypoint for MediaUpload Engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mediaupload.api.v1 import routes_health
from mediaupload.api.v1.routes_upload import router as upload_router
from mediaupload.core.config import settings
from mediaupload.core.exceptions import ChunkMissingError, MediaUploadError
from mediaupload.core.logging import setup_logging
from mediaupload.core.middleware import CORSPreflightMiddleware, HTTPErrorLoggingMiddleware
from mediaupload.models.upload import ErrorResponse
from mediaupload.storage.supabase import supabase_backend

logger = logging.getLogger(__name__)


def _error_json(status_code: int, error: ErrorResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error.model_dump(by_alias=True, exclude_none=True),
    )


async def media_upload_error_handler(request: Request, exc: MediaUploadError) -> JSONResponse:
    cause = exc.__cause__
    return _error_json(
        exc.status_code,
        ErrorResponse(
            error=str(exc),
            code=exc.code,
            details=str(cause)[:500] if cause else None,
            chunk_index=exc.chunk_index if isinstance(exc, ChunkMissingError) else None,
        ),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_json(
        400,
        ErrorResponse(error="Invalid request body", code="invalid_request", details=str(exc.errors())[:500]),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_json(exc.status_code, ErrorResponse(error=str(exc.detail), code="http_error"))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error: {exc}",
        exc_info=exc,
        extra={"method": request.method, "path": request.url.path},
    )
    return _error_json(
        500,
        ErrorResponse(
            error="Internal server error",
            code=MediaUploadError.code,
            details=str(exc)[:500] or type(exc).__name__,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await supabase_backend.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    setup_logging()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
    )

    # Last added runs first: preflight is answered before anything else
    app.add_middleware(HTTPErrorLoggingMiddleware)
    app.add_middleware(CORSPreflightMiddleware)

    app.add_exception_handler(MediaUploadError, media_upload_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(upload_router)

    return app


# Export app instance for ASGI servers
app = create_app()
