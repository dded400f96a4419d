"""Observability module for Vantage.

Usage:
    from vantage.observability import observe_risk_score, record_anomaly

    observe_risk_score(55, "High", subject_type="user")
    record_anomaly("impossible_travel", "high")

    # Exposition
    from vantage.observability import get_metrics
    payload = get_metrics()
"""

from vantage.observability.metrics import (
    MetricsConfig,
    MetricsManager,
    create_metrics_manager,
    get_metrics,
    get_metrics_manager,
    observe_batch_duration,
    observe_check_duration,
    observe_risk_score,
    record_anomaly,
    record_check_failure,
    record_http_request,
    record_recommendation,
    record_strategy_failure,
)

__all__ = [
    "MetricsConfig",
    "MetricsManager",
    "create_metrics_manager",
    "get_metrics",
    "get_metrics_manager",
    "observe_batch_duration",
    "observe_check_duration",
    "observe_risk_score",
    "record_anomaly",
    "record_check_failure",
    "record_http_request",
    "record_recommendation",
    "record_strategy_failure",
]
