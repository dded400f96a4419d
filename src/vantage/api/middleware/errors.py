"""Translate exceptions escaping a route into APIError JSON bodies."""

from datetime import UTC, datetime
from typing import Any, Callable
from uuid import UUID

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from vantage.api.schemas.errors import APIError, ErrorCode
from vantage.core.exceptions import (
    ContextNotSetError,
    DataUnavailableError,
    IdentifierValidationError,
    PersistenceError,
    RecordNotFoundError,
)
from vantage.core.logging import get_logger, log_exception
from vantage.utils.exceptions import ConfigurationError

logger = get_logger(__name__)

# exception type -> (HTTP status, error_code); first isinstance match wins
EXCEPTION_MAP: dict[type[Exception], tuple[int, str]] = {
    IdentifierValidationError: (422, ErrorCode.INVALID_IDENTIFIER.value),
    RecordNotFoundError: (404, ErrorCode.NOT_FOUND.value),
    DataUnavailableError: (503, ErrorCode.DATA_UNAVAILABLE.value),
    PersistenceError: (503, ErrorCode.PERSISTENCE_FAILED.value),
    ConfigurationError: (500, ErrorCode.CONFIGURATION_ERROR.value),
    ContextNotSetError: (500, ErrorCode.INTERNAL_ERROR.value),
    ValidationError: (422, ErrorCode.VALIDATION_ERROR.value),
}


def _describe(exc: Exception) -> tuple[str, dict[str, Any] | None]:
    """Client-facing message and details for a mapped exception.

    Fact store failures never echo the subject id back to the caller.
    """
    if isinstance(exc, IdentifierValidationError):
        return str(exc), {"kind": exc.kind, "value": exc.value}
    if isinstance(exc, RecordNotFoundError):
        return str(exc), {"kind": exc.kind, "record_id": exc.record_id}
    if isinstance(exc, DataUnavailableError):
        return "Fact store unavailable", {"query": exc.query}
    if isinstance(exc, PersistenceError):
        return "Fact store write failed", {"operation": exc.operation}
    if isinstance(exc, ValidationError):
        return "Request validation failed", {
            "errors": exc.errors(include_url=False, include_context=False)
        }
    if isinstance(exc, ConfigurationError):
        return "Service misconfigured", None
    return "Internal server error: context not initialized", None


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Outermost application middleware: every failure leaves as an APIError."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return self._handle_exception(request, exc)

    def _handle_exception(self, request: Request, exc: Exception) -> JSONResponse:
        request_id = self._get_request_id(request)
        status_code, error_code, message, details = self._map_exception(exc)

        # 4xx are the caller's problem; only server-side failures get a traceback
        if status_code >= 500:
            log_exception(logger, exc, path=request.url.path, request_id=request_id)

        body = APIError(
            error_code=error_code,
            message=message,
            details=details,
            request_id=request_id,
            timestamp=datetime.now(UTC),
        )
        return JSONResponse(
            status_code=status_code,
            content=body.model_dump(mode="json"),
            headers={"X-Request-ID": request_id},
        )

    def _get_request_id(self, request: Request) -> str:
        rid = getattr(request.state, "request_id", None)
        if rid is None:
            return "unknown"
        return str(rid) if isinstance(rid, UUID) else rid

    def _map_exception(self, exc: Exception) -> tuple[int, str, str, dict | None]:
        """Return (status_code, error_code, message, details) for ``exc``."""
        for exc_type, (status_code, error_code) in EXCEPTION_MAP.items():
            if isinstance(exc, exc_type):
                message, details = _describe(exc)
                return status_code, error_code, message, details

        details = {"type": type(exc).__name__} if self._is_debug() else None
        return 500, ErrorCode.INTERNAL_ERROR.value, "Internal server error", details

    def _is_debug(self) -> bool:
        from vantage.config.settings import get_settings

        return get_settings().DEBUG
