"""FastAPI dependencies for API endpoints.

Engines are stateless, so each request builds its own from the application's
fact provider and settings.
"""

from typing import Annotated

from fastapi import Depends, Request

from vantage.config.settings import Settings, get_settings
from vantage.facts.protocol import FactProvider
from vantage.recommendations.engine import RecommendationEngine, RecommenderConfig
from vantage.risk.anomaly_detector import AnomalyDetector, DetectorConfig
from vantage.risk.risk_aggregator import AggregatorConfig, RiskAggregator
from vantage.risk.risk_scorer import RiskScorer, ScorerConfig

__all__ = [
    "get_anomaly_detector",
    "get_app_settings",
    "get_fact_provider",
    "get_recommendation_engine",
    "get_risk_aggregator",
    "get_risk_scorer",
]


def get_app_settings(request: Request) -> Settings:
    """Get the settings the application was created with."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_fact_provider(request: Request) -> FactProvider:
    """Get the fact provider wired into the application."""
    return request.app.state.provider


def get_risk_scorer(
    provider: Annotated[FactProvider, Depends(get_fact_provider)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> RiskScorer:
    """Build a risk scorer for this request."""
    evaluation = settings.evaluation
    config = ScorerConfig(
        reference_timezone=evaluation.reference_timezone,
        max_concurrency=evaluation.max_concurrent_evaluations,
    )
    return RiskScorer(provider, config=config)


def get_anomaly_detector(
    provider: Annotated[FactProvider, Depends(get_fact_provider)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> AnomalyDetector:
    """Build an anomaly detector for this request."""
    evaluation = settings.evaluation
    config = DetectorConfig(
        check_timeout_seconds=evaluation.check_timeout_seconds,
        reference_timezone=evaluation.reference_timezone,
        max_concurrency=evaluation.max_concurrent_evaluations,
    )
    return AnomalyDetector(provider, config=config)


def get_recommendation_engine(
    provider: Annotated[FactProvider, Depends(get_fact_provider)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    scorer: Annotated[RiskScorer, Depends(get_risk_scorer)],
) -> RecommendationEngine:
    """Build a recommendation engine for this request."""
    config = RecommenderConfig(
        strategy_timeout_seconds=settings.evaluation.check_timeout_seconds,
    )
    return RecommendationEngine(provider, config=config, scorer=scorer)


def get_risk_aggregator(
    provider: Annotated[FactProvider, Depends(get_fact_provider)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    scorer: Annotated[RiskScorer, Depends(get_risk_scorer)],
) -> RiskAggregator:
    """Build a risk aggregator for this request."""
    config = AggregatorConfig(max_concurrency=settings.evaluation.max_concurrent_evaluations)
    return RiskAggregator(provider, scorer=scorer, config=config)
