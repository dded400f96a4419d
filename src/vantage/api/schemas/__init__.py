"""API request and response schemas."""

from .anomalies import (
    AnomalyListResponse,
    AnomalyResponse,
    AnomalyReviewRequest,
    AnomalyReviewResponse,
    OrganizationSweepResponse,
)
from .errors import APIError, ErrorCode
from .health import HealthResponse, HealthStatus
from .recommendations import (
    AutoApprovalCandidateResponse,
    AutoApprovalListResponse,
    RecommendationListResponse,
    RecommendationResponse,
)
from .risk import OrganizationRiskStatsResponse, RiskAssessmentResponse, RiskFactorResponse

__all__ = [
    # Errors
    "APIError",
    "ErrorCode",
    # Health
    "HealthResponse",
    "HealthStatus",
    # Risk
    "OrganizationRiskStatsResponse",
    "RiskAssessmentResponse",
    "RiskFactorResponse",
    # Anomalies
    "AnomalyListResponse",
    "AnomalyResponse",
    "AnomalyReviewRequest",
    "AnomalyReviewResponse",
    "OrganizationSweepResponse",
    # Recommendations
    "AutoApprovalCandidateResponse",
    "AutoApprovalListResponse",
    "RecommendationListResponse",
    "RecommendationResponse",
]
