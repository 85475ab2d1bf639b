"""Middleware for CORS preflight and HTTP error logging."""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from mediaupload.core.config import settings
from mediaupload.core.logging import file_id_scope

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"
CORS_ALLOW_METHODS = "POST, GET, OPTIONS"


def cors_headers() -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": settings.CORS_ALLOW_ORIGIN,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
    }


class CORSPreflightMiddleware(BaseHTTPMiddleware):
    """Answer OPTIONS with an empty 200 and add CORS headers to every response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=cors_headers())

        response = await call_next(request)
        response.headers.update(cors_headers())
        return response


class HTTPErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to ensure all HTTP errors are logged.

    - 4xx responses: logged at WARN level
    - 5xx responses: logged at ERROR level
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log errors.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/handler in chain

        Returns:
            HTTP response
        """
        start_time = time.time()

        file_id = None
        if request.method == "POST":
            try:
                body = await request.json()
                if isinstance(body, dict):
                    file_id = body.get("fileId")
            except ValueError:
                # Body is not JSON; the route reports that itself
                pass
        if not isinstance(file_id, str):
            file_id = None

        with file_id_scope(file_id):
            response = await call_next(request)
            self._log_error_response(request, response, (time.time() - start_time) * 1000)

        return response

    @staticmethod
    def _log_error_response(request: Request, response: Response, duration_ms: float) -> None:
        if response.status_code < 400:
            return
        extra = {
            "http_status": response.status_code,
            "method": request.method,
            "path": request.url.path,
            "duration_ms": duration_ms,
        }
        if response.status_code < 500:
            logger.warning("Client error response", extra=extra)
        else:
            logger.error("Server error response", extra=extra)
