"""Core services and utilities for Vantage."""

from .concurrency import gather_bounded
from .context import (
    ActorType,
    RequestContext,
    create_context,
    get_current_context,
    get_current_context_or_none,
    request_context,
    reset_context,
    set_context,
)
from .exceptions import (
    ContextNotSetError,
    DataUnavailableError,
    IdentifierValidationError,
    PersistenceError,
    RecordNotFoundError,
)
from .identifiers import validate_identifier

__all__ = [
    # Concurrency
    "gather_bounded",
    # Context
    "ActorType",
    "RequestContext",
    "create_context",
    "get_current_context",
    "get_current_context_or_none",
    "request_context",
    "reset_context",
    "set_context",
    # Exceptions
    "ContextNotSetError",
    "DataUnavailableError",
    "IdentifierValidationError",
    "PersistenceError",
    "RecordNotFoundError",
    # Identifiers
    "validate_identifier",
]
