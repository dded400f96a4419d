"""Open a RequestContext around every API call."""

from typing import Callable
from uuid import UUID

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from uuid_utils.compat import uuid7

from vantage.core.context import ActorType, create_context, request_context

# Health checks and docs run without a context; they still get an X-Request-ID
SKIP_CONTEXT_PATHS = {
    "/health",
    "/metrics",
    "/docs",
    "/redoc",
    "/openapi.json",
}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request, correlation, actor and organization ids for the call.

    The context is a ContextVar, so log entries from concurrent checks
    spawned by the engines carry the same ids.

    Reads (all optional):
        X-Correlation-ID: Correlation id from an upstream caller (UUID)
        X-Actor-ID: Reviewer or service performing the call
        X-Organization-ID: Organization the call is scoped to

    Sets:
        request.state.request_id: The generated request ID (UUIDv7)
        X-Request-ID response header: For client correlation
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        request_id = uuid7()
        request.state.request_id = request_id

        if self._should_skip_context(request.url.path):
            response = await call_next(request)
            response.headers["X-Request-ID"] = str(request_id)
            return response

        actor_id = request.headers.get("X-Actor-ID")
        ctx = create_context(
            request_id=request_id,
            correlation_id=self._parse_uuid(request.headers.get("X-Correlation-ID")),
            actor_id=actor_id,
            actor_type=ActorType.HUMAN if actor_id else ActorType.SERVICE,
            organization_id=request.headers.get("X-Organization-ID"),
        )

        with request_context(ctx):
            response = await call_next(request)

        response.headers["X-Request-ID"] = str(request_id)
        response.headers["X-Correlation-ID"] = str(ctx.correlation_id)

        return response

    def _should_skip_context(self, path: str) -> bool:
        return path in SKIP_CONTEXT_PATHS or path.startswith(("/docs", "/redoc"))

    def _parse_uuid(self, value: str | None) -> UUID | None:
        """Parse an incoming correlation id, ignoring malformed values."""
        if not value:
            return None
        try:
            return UUID(value)
        except ValueError:
            return None
