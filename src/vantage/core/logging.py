"""structlog setup shared by the API, the engines and the fact providers.

Every entry carries the deployment environment and, inside a request, the
identifiers of the current RequestContext. Standard library records
(uvicorn, httpx) are rendered by the same processor chain so a deployment
emits a single JSON stream.
"""
# ruff: noqa: ARG001  # Processor signatures required by structlog API

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import Processor

from vantage.config.settings import get_settings
from vantage.core.context import get_current_context_or_none

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# stdlib loggers that install their own handlers and must be redirected
_REDIRECTED_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")


def add_request_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Stamp request, correlation, actor and organization ids onto the event.

    Unset context fields are skipped and keys already on the event are kept.
    """
    ctx = get_current_context_or_none()
    if ctx is None:
        return event_dict
    for key, value in ctx.to_log_dict().items():
        if value is not None:
            event_dict.setdefault(key, value)
    return event_dict


def add_environment_info(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    event_dict["environment"] = get_settings().ENVIRONMENT
    return event_dict


def drop_color_message_key(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """uvicorn duplicates its message with ANSI codes under color_message."""
    event_dict.pop("color_message", None)
    return event_dict


def _processor_chain(add_timestamp: bool, json_format: bool) -> list[Processor]:
    chain: list[Processor] = []
    if add_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso"))
    chain += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_request_context,
        add_environment_info,
        drop_color_message_key,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        chain.append(structlog.processors.format_exc_info)
    return chain


def setup_logging(
    log_level: LogLevel | None = None,
    json_format: bool | None = None,
    add_timestamp: bool = True,
) -> None:
    """Install structlog and a stdout handler on the root logger.

    Args:
        log_level: Minimum level; defaults to ``Settings.log_level``
        json_format: JSON lines instead of the colored console renderer;
            defaults to True only in production
        add_timestamp: Prefix entries with an ISO-8601 timestamp
    """
    settings = get_settings()
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    if json_format is None:
        json_format = settings.ENVIRONMENT == "production"

    chain = _processor_chain(add_timestamp, json_format)
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[*chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    for name in _REDIRECTED_LOGGERS:
        redirected = logging.getLogger(name)
        redirected.handlers = [handler]
        redirected.propagate = False

    # one INFO line per fact service call otherwise
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LogContext:
    """Bind keys to every entry logged inside a ``with`` block.

    Example:
        with LogContext(operation="org_sweep", organization_id="org-1"):
            logger.info("sweep_started")
    """

    def __init__(self, **kwargs: Any):
        self.context = kwargs

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        structlog.contextvars.unbind_contextvars(*self.context)


def _level_for_status(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    return "warning" if status_code >= 400 else "info"


def log_request_end(
    logger: structlog.stdlib.BoundLogger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    **kwargs: Any,
) -> None:
    """Log ``request_completed``; 4xx at warning, 5xx at error."""
    getattr(logger, _level_for_status(status_code))(
        "request_completed",
        http_method=method,
        http_path=path,
        http_status=status_code,
        duration_ms=round(duration_ms, 2),
        **kwargs,
    )


def log_exception(
    logger: structlog.stdlib.BoundLogger,
    exc: Exception,
    **kwargs: Any,
) -> None:
    """Log ``exception_occurred`` with the active traceback attached."""
    logger.exception(
        "exception_occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        **kwargs,
    )


def log_external_call(
    logger: structlog.stdlib.BoundLogger,
    service: str,
    operation: str,
    duration_ms: float,
    success: bool,
    **kwargs: Any,
) -> None:
    """Log one fact service round trip; failures surface at warning."""
    (logger.debug if success else logger.warning)(
        "external_call",
        service=service,
        operation=operation,
        duration_ms=round(duration_ms, 2),
        success=success,
        **kwargs,
    )
