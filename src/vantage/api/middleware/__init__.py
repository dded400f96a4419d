"""API middleware components."""

from .context import RequestContextMiddleware
from .errors import ErrorHandlingMiddleware
from .logging import RequestLoggingMiddleware
from .observability import ObservabilityMiddleware

__all__ = [
    "ErrorHandlingMiddleware",
    "ObservabilityMiddleware",
    "RequestContextMiddleware",
    "RequestLoggingMiddleware",
]
