"""API schemas for access recommendations."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from vantage.recommendations.types import (
    AutoApprovalCandidate,
    Recommendation,
    RecommendationPriority,
    RecommendationStrategy,
    RecommendedResourceType,
)
from vantage.risk.risk_scorer import RiskLevel


class RecommendationResponse(BaseModel):
    """A ranked access recommendation."""

    id: str
    strategy: RecommendationStrategy
    user_id: str | None = None
    resource_type: RecommendedResourceType
    resource_id: str
    resource_name: str
    title: str
    description: str
    reason: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    priority: RecommendationPriority
    estimated_risk: RiskLevel
    actionable: bool
    auto_approvable: bool
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @classmethod
    def from_recommendation(cls, rec: Recommendation) -> "RecommendationResponse":
        """Create from an engine recommendation."""
        return cls(**rec.to_dict())


class RecommendationListResponse(BaseModel):
    """Ranked recommendations, most urgent first."""

    items: list[RecommendationResponse] = Field(default_factory=list)
    total: int = Field(..., ge=0)

    @classmethod
    def from_recommendations(cls, recs: list[Recommendation]) -> "RecommendationListResponse":
        return cls(
            items=[RecommendationResponse.from_recommendation(r) for r in recs],
            total=len(recs),
        )


class AutoApprovalCandidateResponse(BaseModel):
    """Approval history of one resource."""

    resource_id: str
    resource_name: str
    total_requests: int = Field(..., ge=0)
    approved_requests: int = Field(..., ge=0)
    approval_rate: int = Field(..., ge=0, le=100, description="Whole-percent approval rate")
    average_approval_hours: float | None = None
    recommend_auto_approve: bool
    reason: str


class AutoApprovalListResponse(BaseModel):
    """Resources of an organization, highest approval rate first."""

    organization_id: str
    items: list[AutoApprovalCandidateResponse] = Field(default_factory=list)
    total: int = Field(..., ge=0)

    @classmethod
    def from_candidates(
        cls, organization_id: str, candidates: list[AutoApprovalCandidate]
    ) -> "AutoApprovalListResponse":
        return cls(
            organization_id=organization_id,
            items=[AutoApprovalCandidateResponse(**c.to_dict()) for c in candidates],
            total=len(candidates),
        )
