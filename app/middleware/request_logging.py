"""
Request Logging Middleware
Assigns a request id and logs method, path, status and duration for every request
"""
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.logging_config import get_logger

logger = get_logger(__name__)

SLOW_REQUEST_SECONDS = 1.0


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception:
            response_time = time.time() - start_time
            logger.exception(
                f"[{request_id}] {request.method} {request.url.path} failed after {response_time*1000:.0f}ms"
            )
            raise

        response_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{response_time*1000:.2f}ms"

        if response_time > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"SLOW REQUEST: {request.method} {request.url.path} - "
                f"{response_time*1000:.0f}ms - Status: {response.status_code}"
            )
        else:
            logger.info(
                f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} "
                f"({response_time*1000:.0f}ms)"
            )
        return response
