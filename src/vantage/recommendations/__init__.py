"""Access recommendations from peer, role, department, policy and history signals."""

from vantage.recommendations.engine import (
    RecommendationEngine,
    RecommenderConfig,
    create_recommendation_engine,
    deduplicate,
    rank,
)
from vantage.recommendations.rules import (
    BIRTHRIGHT_RULES,
    ROLE_PATTERNS,
    BirthrightRule,
    RolePattern,
    estimate_permission_risk,
    estimate_role_risk,
    job_title_core,
)
from vantage.recommendations.strategies import (
    AutoApprovalAnalysis,
    BaseStrategy,
    BirthrightStrategy,
    ComplianceStrategy,
    DepartmentStrategy,
    HistoricalStrategy,
    PeerStrategy,
    RolePatternStrategy,
    RoleStrategy,
)
from vantage.recommendations.types import (
    AutoApprovalCandidate,
    Recommendation,
    RecommendationPriority,
    RecommendationStrategy,
    RecommendationSubject,
    RecommendedResourceType,
)

__all__ = [
    # Engine
    "RecommendationEngine",
    "RecommenderConfig",
    "create_recommendation_engine",
    "deduplicate",
    "rank",
    # Types
    "AutoApprovalCandidate",
    "Recommendation",
    "RecommendationPriority",
    "RecommendationStrategy",
    "RecommendationSubject",
    "RecommendedResourceType",
    # Strategies
    "AutoApprovalAnalysis",
    "BaseStrategy",
    "BirthrightStrategy",
    "ComplianceStrategy",
    "DepartmentStrategy",
    "HistoricalStrategy",
    "PeerStrategy",
    "RolePatternStrategy",
    "RoleStrategy",
    # Rules
    "BIRTHRIGHT_RULES",
    "ROLE_PATTERNS",
    "BirthrightRule",
    "RolePattern",
    "estimate_permission_risk",
    "estimate_role_risk",
    "job_title_core",
]
