"""Health check and metrics endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST

from vantage.api.dependencies import get_app_settings, get_fact_provider
from vantage.api.schemas.health import HealthResponse, HealthStatus
from vantage.config.settings import Settings
from vantage.facts.protocol import FactProvider
from vantage.observability.metrics import get_metrics

router = APIRouter(tags=["health"])

# Reported by /health and the service_info metric
APP_VERSION = "0.1.0"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Basic health check",
    description="Returns basic liveness status. No authentication required.",
)
async def health_check(
    settings: Annotated[Settings, Depends(get_app_settings)],
    provider: Annotated[FactProvider, Depends(get_fact_provider)],
) -> HealthResponse:
    """Basic liveness check endpoint.

    Returns 200 if the application is running, regardless of whether the
    fact store is reachable.
    """
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        version=APP_VERSION,
        environment=settings.ENVIRONMENT,
        fact_provider=type(provider).__name__,
        timestamp=datetime.now(UTC),
    )


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Prometheus exposition of scoring, detection and HTTP metrics.",
    response_class=Response,
)
async def metrics(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> Response:
    """Expose metrics in the Prometheus text format."""
    if not settings.metrics_enabled:
        return Response(status_code=404)
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)
