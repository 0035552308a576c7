"""Request logging middleware."""

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from hlsmux.utils.logger import get_logger

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log upload requests and their outcome. Other paths pass through."""

    async def dispatch(self, request: Request, call_next):
        """Log request before processing and response after."""
        if not request.url.path.startswith("/upload"):
            return await call_next(request)

        start_time = time.time()

        logger.info(
            "Incoming upload request",
            method=request.method,
            path=request.url.path,
            content_length=request.headers.get("content-length"),
            client=request.client.host if request.client else None,
        )

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Upload request completed",
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        return response
