"""Prometheus collectors for the scoring, detection and recommendation engines.

Collectors are module level and live in the default registry; the engines
call the ``record_*`` and ``observe_*`` helpers rather than touching them.
The HTTP collectors are fed by ObservabilityMiddleware.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from dataclasses import dataclass
from time import perf_counter
from typing import TYPE_CHECKING

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    Info,
    generate_latest,
)

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = [
    "MetricsConfig",
    "MetricsManager",
    "RISK_SCORE_DISTRIBUTION",
    "RISK_LEVEL_COUNT",
    "ANOMALIES_DETECTED",
    "ANOMALY_CHECK_FAILURES",
    "ANOMALY_CHECK_DURATION",
    "RECOMMENDATIONS_EMITTED",
    "RECOMMENDATION_STRATEGY_FAILURES",
    "BATCH_EVALUATION_DURATION",
    "HTTP_REQUEST_DURATION",
    "HTTP_REQUEST_COUNT",
    "observe_risk_score",
    "record_anomaly",
    "record_check_failure",
    "observe_check_duration",
    "record_recommendation",
    "record_strategy_failure",
    "observe_batch_duration",
    "record_http_request",
    "get_metrics",
    "get_metrics_manager",
    "create_metrics_manager",
]


@dataclass
class MetricsConfig:
    """Switches for metric publication.

    Attributes:
        enabled: When false, ``MetricsManager.initialize`` is a no-op
        prefix: Metric name prefix
    """

    enabled: bool = True
    prefix: str = "vantage"

    @classmethod
    def from_env(cls) -> MetricsConfig:
        """Read METRICS_ENABLED and METRICS_PREFIX."""
        return cls(
            enabled=os.getenv("METRICS_ENABLED", "true").lower() == "true",
            prefix=os.getenv("METRICS_PREFIX", "vantage"),
        )


_config = MetricsConfig()

# risk
RISK_SCORE_DISTRIBUTION = Histogram(
    f"{_config.prefix}_risk_score",
    "Distribution of computed risk scores",
    ["subject_type"],
    buckets=(10, 20, 25, 30, 40, 50, 60, 70, 75, 80, 90, 100),
)

RISK_LEVEL_COUNT = Counter(
    f"{_config.prefix}_risk_level_total",
    "Risk assessments by level",
    ["subject_type", "level"],
)

# anomaly
ANOMALIES_DETECTED = Counter(
    f"{_config.prefix}_anomalies_detected_total",
    "Total anomalies detected",
    ["anomaly_type", "severity"],
)

ANOMALY_CHECK_FAILURES = Counter(
    f"{_config.prefix}_anomaly_check_failures_total",
    "Behavioral checks that failed or timed out",
    ["check"],
)

ANOMALY_CHECK_DURATION = Histogram(
    f"{_config.prefix}_anomaly_check_duration_seconds",
    "Duration of individual behavioral checks",
    ["check"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# recommendation
RECOMMENDATIONS_EMITTED = Counter(
    f"{_config.prefix}_recommendations_emitted_total",
    "Recommendations returned after deduplication",
    ["strategy", "priority"],
)

RECOMMENDATION_STRATEGY_FAILURES = Counter(
    f"{_config.prefix}_recommendation_strategy_failures_total",
    "Recommendation strategies that raised",
    ["strategy"],
)

# batch
BATCH_EVALUATION_DURATION = Histogram(
    f"{_config.prefix}_batch_evaluation_duration_seconds",
    "Duration of organization-wide batch evaluations",
    ["operation"],
    buckets=(0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)

# http
HTTP_REQUEST_DURATION = Histogram(
    f"{_config.prefix}_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "endpoint", "status_code"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

HTTP_REQUEST_COUNT = Counter(
    f"{_config.prefix}_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

SERVICE_INFO = Info(
    f"{_config.prefix}_service",
    "Vantage build and deployment",
)


class MetricsManager:
    """Owns the registry that /metrics exposes and the one-time service info."""

    def __init__(
        self,
        config: MetricsConfig | None = None,
        registry: CollectorRegistry | None = None,
    ) -> None:
        self.config = config or MetricsConfig()
        self.registry = registry or REGISTRY
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(
        self,
        service_name: str = "vantage",
        service_version: str = "0.1.0",
        environment: str = "development",
    ) -> None:
        """Publish ``vantage_service_info``; later calls are ignored."""
        if self._initialized or not self.config.enabled:
            return

        SERVICE_INFO.info(
            {
                "name": service_name,
                "version": service_version,
                "environment": environment,
            }
        )

        self._initialized = True

    def get_metrics(self) -> bytes:
        return generate_latest(self.registry)


_metrics_manager: MetricsManager | None = None


def get_metrics_manager() -> MetricsManager:
    """Process-wide manager, configured from the environment on first use."""
    global _metrics_manager
    if _metrics_manager is None:
        _metrics_manager = MetricsManager(MetricsConfig.from_env())
    return _metrics_manager


def create_metrics_manager(
    config: MetricsConfig | None = None,
    registry: CollectorRegistry | None = None,
) -> MetricsManager:
    """Replace the process-wide manager and return it."""
    global _metrics_manager
    _metrics_manager = MetricsManager(config, registry)
    return _metrics_manager


def get_metrics() -> bytes:
    """Text exposition of the process-wide registry."""
    return get_metrics_manager().get_metrics()


def observe_risk_score(score: float, level: str, subject_type: str = "user") -> None:
    """Observe a 0-100 score; ``subject_type`` is "user" or "request"."""
    RISK_SCORE_DISTRIBUTION.labels(subject_type=subject_type).observe(score)
    RISK_LEVEL_COUNT.labels(subject_type=subject_type, level=level).inc()


def record_anomaly(anomaly_type: str, severity: str) -> None:
    """Record a detected anomaly."""
    ANOMALIES_DETECTED.labels(anomaly_type=anomaly_type, severity=severity).inc()


def record_check_failure(check: str) -> None:
    """Record a behavioral check that failed or timed out."""
    ANOMALY_CHECK_FAILURES.labels(check=check).inc()


@contextmanager
def observe_check_duration(check: str) -> Generator[None, None, None]:
    """Time a behavioral check.

    Example:
        with observe_check_duration("impossible_travel"):
            await run_check()
    """
    start = perf_counter()
    try:
        yield
    finally:
        ANOMALY_CHECK_DURATION.labels(check=check).observe(perf_counter() - start)


def record_recommendation(strategy: str, priority: str) -> None:
    """Record a recommendation returned to a caller."""
    RECOMMENDATIONS_EMITTED.labels(strategy=strategy, priority=priority).inc()


def record_strategy_failure(strategy: str) -> None:
    """Record a recommendation strategy that raised."""
    RECOMMENDATION_STRATEGY_FAILURES.labels(strategy=strategy).inc()


def observe_batch_duration(operation: str, duration_seconds: float) -> None:
    """Record the duration of an organization-wide batch."""
    BATCH_EVALUATION_DURATION.labels(operation=operation).observe(duration_seconds)


def record_http_request(
    method: str,
    endpoint: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """``endpoint`` is the route template, never the raw path."""
    labels = {"method": method, "endpoint": endpoint, "status_code": str(status_code)}
    HTTP_REQUEST_DURATION.labels(**labels).observe(duration_seconds)
    HTTP_REQUEST_COUNT.labels(**labels).inc()
