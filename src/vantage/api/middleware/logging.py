"""One structured log line per HTTP request."""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from vantage.core.logging import get_logger, log_request_end

logger = get_logger("vantage.api.requests")

# Proxy headers consulted, in order, before the socket peer address
_CLIENT_IP_HEADERS = ("X-Forwarded-For", "X-Real-IP")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Emit ``request_completed`` with timing, status and caller address."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        log_request_end(
            logger,
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id=str(getattr(request.state, "request_id", "unknown")),
            client_ip=self._get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        return response

    def _get_client_ip(self, request: Request) -> str | None:
        """Originating client address; for a proxy chain, the first hop."""
        for header in _CLIENT_IP_HEADERS:
            value = request.headers.get(header)
            if value:
                return value.split(",")[0].strip()
        return request.client.host if request.client else None
