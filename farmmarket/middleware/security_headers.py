"""
Security headers middleware.

Adds browser hardening headers to every response and logs request timing.
"""

import time
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from farmmarket.core.logging_config import get_logger

logger = get_logger(__name__)

SLOW_REQUEST_MS = 1000

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; script-src 'self' 'unsafe-inline' 'unsafe-eval'; "
        "style-src 'self' 'unsafe-inline'; img-src 'self' data: https:; font-src 'self' data:; "
        "connect-src 'self' https:; frame-src 'none'; object-src 'none';"
    ),
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach security headers and X-Process-Time to every response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        method = request.method
        path = request.url.path

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"

        logger.debug(
            f"{method} {path} -> {response.status_code} ({duration_ms:.2f}ms)",
            extra={"method": method, "path": path, "status_code": response.status_code, "duration_ms": duration_ms},
        )
        if duration_ms > SLOW_REQUEST_MS:
            logger.warning(
                f"Slow API request: {method} {path} took {duration_ms:.2f}ms",
                extra={"method": method, "path": path, "duration_ms": duration_ms},
            )
        return response
