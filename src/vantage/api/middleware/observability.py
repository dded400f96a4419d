"""Prometheus instrumentation of the HTTP surface."""

import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from vantage.observability.metrics import record_http_request


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Count and time every request under its route template.

    Labelling by template keeps user and request ids out of label values.
    Requests to /health and /metrics are not recorded.
    """

    EXCLUDED_PATHS = {"/health", "/metrics"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        status_code = 500  # an exception escaping the app is reported as 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            record_http_request(
                method=request.method,
                endpoint=self._route_template(request),
                status_code=status_code,
                duration_seconds=time.perf_counter() - started,
            )

    def _route_template(self, request: Request) -> str:
        """Matched route path, e.g. ``/v1/risk/user/{user_id}``."""
        route = request.scope.get("route")
        return getattr(route, "path", None) or "unmatched"
