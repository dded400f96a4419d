"""Request context for async-safe evaluation tracing.

This module provides request context propagation using Python's contextvars
so that every log line emitted while serving one evaluation carries the same
correlation identifiers, including lines emitted from concurrent check tasks.

Usage:
    from vantage.core.context import create_context, request_context

    ctx = create_context(actor_id="reviewer-7", organization_id="org-1")

    with request_context(ctx):
        await detector.detect_user_anomalies(user_id)
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_utils.compat import uuid7

from vantage.core.exceptions import ContextNotSetError


class ActorType(str, Enum):
    """Who triggered an evaluation."""

    HUMAN = "human"  # Reviewer or administrator via the API
    SERVICE = "service"  # Internal service call
    SYSTEM = "system"  # Scheduled sweep or batch job


class RequestContext(BaseModel):
    """Identifiers shared by every log entry of one evaluation."""

    request_id: UUID = Field(default_factory=uuid7)
    correlation_id: UUID = Field(default_factory=uuid7)
    actor_id: str | None = None
    actor_type: ActorType = ActorType.SYSTEM
    organization_id: str | None = None
    initiated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"frozen": True}

    def to_log_dict(self) -> dict[str, Any]:
        """Fields merged into log entries by add_request_context."""
        return {
            "request_id": str(self.request_id),
            "correlation_id": str(self.correlation_id),
            "actor_id": self.actor_id,
            "organization_id": self.organization_id,
        }


_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)


def get_current_context() -> RequestContext:
    """Context of the evaluation being served; raises ContextNotSetError outside one."""
    ctx = _request_context.get()
    if ctx is None:
        raise ContextNotSetError(
            "No evaluation context is active; wrap the call in request_context()."
        )
    return ctx


def get_current_context_or_none() -> RequestContext | None:
    return _request_context.get()


def set_context(ctx: RequestContext) -> Token[RequestContext | None]:
    """Install ``ctx``; pass the returned token to reset_context to undo."""
    return _request_context.set(ctx)


def reset_context(token: Token[RequestContext | None]) -> None:
    _request_context.reset(token)


@contextmanager
def request_context(ctx: RequestContext):
    """Make ``ctx`` current for the block, including tasks spawned inside it."""
    token = set_context(ctx)
    try:
        yield ctx
    finally:
        reset_context(token)


def create_context(
    *,
    actor_id: str | None = None,
    actor_type: ActorType = ActorType.SYSTEM,
    organization_id: str | None = None,
    request_id: UUID | None = None,
    correlation_id: UUID | None = None,
) -> RequestContext:
    """Build a RequestContext, minting UUIDv7 ids that are not supplied.

    Args:
        actor_id: Who triggered the evaluation, if known
        actor_type: Type of actor (default: SYSTEM)
        organization_id: Organization the evaluation is scoped to
        request_id: Request id to reuse instead of minting one
        correlation_id: Correlation id propagated from the caller, if any
    """
    return RequestContext(
        request_id=request_id or uuid7(),
        correlation_id=correlation_id or uuid7(),
        actor_id=actor_id,
        actor_type=actor_type,
        organization_id=organization_id,
    )
