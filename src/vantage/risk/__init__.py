"""Risk scoring, anomaly detection and organization aggregation."""

from vantage.risk.anomaly_detector import (
    Anomaly,
    AnomalyDetector,
    AnomalySeverity,
    AnomalyType,
    DetectorConfig,
    create_anomaly_detector,
)
from vantage.risk.geo import haversine_miles
from vantage.risk.risk_aggregator import (
    AggregatorConfig,
    OrganizationRiskStats,
    RiskAggregator,
    create_risk_aggregator,
)
from vantage.risk.risk_scorer import (
    RESOURCE_TYPE_BASE_RISK,
    RiskAssessment,
    RiskFactor,
    RiskLevel,
    RiskScorer,
    ScorerConfig,
    create_risk_scorer,
    risk_level_for_score,
)

__all__ = [
    # Scoring
    "RESOURCE_TYPE_BASE_RISK",
    "RiskAssessment",
    "RiskFactor",
    "RiskLevel",
    "RiskScorer",
    "ScorerConfig",
    "create_risk_scorer",
    "risk_level_for_score",
    # Anomalies
    "Anomaly",
    "AnomalyDetector",
    "AnomalySeverity",
    "AnomalyType",
    "DetectorConfig",
    "create_anomaly_detector",
    "haversine_miles",
    # Aggregation
    "AggregatorConfig",
    "OrganizationRiskStats",
    "RiskAggregator",
    "create_risk_aggregator",
]
