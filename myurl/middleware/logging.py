"""
Logging Middleware for Request/Response Logging

Logs every HTTP request handled by the frontend:
- Request method and path
- Response status code
- Processing time
- Client IP address

Session ids in redirect session paths are logged as-is; they are opaque
and carry no visitor data.
"""

import time
import logging
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger("myurl")


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Honours X-Forwarded-For when the frontend sits behind a proxy.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # May contain a chain of proxies, the first entry is the client
        return forwarded_for.split(",")[0].strip()

    return request.client.host if request.client else "unknown"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware logging method, path, status, duration and client IP.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        client_ip = get_client_ip(request)
        start_time = time.perf_counter()

        response = await call_next(request)

        process_time = time.perf_counter() - start_time

        # Format: METHOD PATH STATUS_CODE PROCESS_TIME_MS CLIENT_IP
        logger.info(
            f"{request.method} {request.url.path} "
            f"{response.status_code} {process_time*1000:.2f}ms "
            f"IP:{client_ip}"
        )

        response.headers["X-Process-Time"] = f"{process_time:.6f}"

        return response


def add_logging_middleware(app: FastAPI) -> None:
    """Add the request logging middleware to the app."""
    app.add_middleware(LoggingMiddleware)
