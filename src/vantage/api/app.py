"""Assembly of the Vantage HTTP service.

Run with ``uvicorn vantage.api.app:create_app --factory``.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from vantage.api.middleware import (
    ErrorHandlingMiddleware,
    ObservabilityMiddleware,
    RequestContextMiddleware,
    RequestLoggingMiddleware,
)
from vantage.api.routers import health_router, v1_router
from vantage.api.routers.health import APP_VERSION
from vantage.config.settings import Settings, get_settings
from vantage.config.validation import validate_or_raise
from vantage.core.logging import get_logger
from vantage.facts.http import HttpFactProvider
from vantage.facts.memory import InMemoryFactProvider
from vantage.facts.protocol import FactProvider
from vantage.observability import get_metrics_manager

logger = get_logger("vantage.api")

# Registered innermost first; Starlette runs the last one added outermost.
# Logging and metrics wrap error handling and record the rendered status.
_MIDDLEWARE = (
    RequestContextMiddleware,
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    ObservabilityMiddleware,
)


def create_app(
    settings: Settings | None = None,
    provider: FactProvider | None = None,
) -> FastAPI:
    """Build the FastAPI application around a fact provider.

    Settings are validated first, so a misconfigured deployment fails here
    rather than on its first request.

    Args:
        settings: Defaults to the process-wide settings
        provider: Defaults to the remote fact service when
            ``fact_service_url`` is set, otherwise an empty in-memory store

    Example:
        provider = InMemoryFactProvider()
        provider.add_identity(IdentityFacts(id="u-1", admin_role_count=2))
        app = create_app(settings=Settings(ENVIRONMENT="test"), provider=provider)
    """
    settings = settings or get_settings()
    validate_or_raise(settings)

    docs = settings.DEBUG
    app = FastAPI(
        title="Vantage API",
        description="Identity governance risk scoring, anomaly detection and recommendations",
        version=APP_VERSION,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.provider = provider or _default_provider(settings)

    for middleware in _MIDDLEWARE:
        app.add_middleware(middleware)

    app.include_router(health_router)
    app.include_router(v1_router)
    return app


def _default_provider(settings: Settings) -> FactProvider:
    if settings.fact_service_url:
        return HttpFactProvider.from_settings(settings)
    return InMemoryFactProvider()


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Register service metrics on startup; close the fact service client on shutdown."""
    settings: Settings = app.state.settings
    provider = app.state.provider
    logger.info(
        "service_starting",
        environment=settings.ENVIRONMENT,
        fact_provider=type(provider).__name__,
    )

    if settings.metrics_enabled:
        get_metrics_manager().initialize(
            service_name="vantage",
            service_version=APP_VERSION,
            environment=settings.ENVIRONMENT,
        )

    yield

    logger.info("service_stopping")
    if isinstance(provider, HttpFactProvider):
        try:
            await provider.aclose()
        except Exception as exc:
            logger.warning("fact_provider_close_failed", error=str(exc))
