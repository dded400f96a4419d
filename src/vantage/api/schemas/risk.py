"""API schemas for risk scoring and organization statistics."""

from datetime import datetime

from pydantic import BaseModel, Field

from vantage.risk.risk_aggregator import OrganizationRiskStats
from vantage.risk.risk_scorer import RiskAssessment, RiskLevel


class RiskFactorResponse(BaseModel):
    """One explanation line of an assessment."""

    label: str = Field(..., description="Machine-readable factor name")
    points: int = Field(..., ge=0, description="Points contributed")
    rationale: str = Field(..., description="Human-readable explanation")


class RiskAssessmentResponse(BaseModel):
    """Risk assessment for a user or access request."""

    assessment_id: str = Field(..., description="Assessment identifier")
    subject_id: str | None = Field(default=None, description="User or request assessed")
    subject_type: str = Field(..., description="user or request")
    score: int = Field(..., ge=0, le=100, description="Composite risk score")
    level: RiskLevel = Field(..., description="Risk level derived from the score")
    factors: list[RiskFactorResponse] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    is_default: bool = Field(
        default=False, description="True when facts were unavailable and no score was computed"
    )
    computed_at: datetime = Field(..., description="When the assessment was computed")

    @classmethod
    def from_assessment(cls, assessment: RiskAssessment) -> "RiskAssessmentResponse":
        """Create from an engine assessment."""
        return cls(
            assessment_id=assessment.assessment_id,
            subject_id=assessment.subject_id,
            subject_type=assessment.subject_type,
            score=assessment.score,
            level=assessment.level,
            factors=[RiskFactorResponse(**f.to_dict()) for f in assessment.factors],
            recommendations=list(assessment.recommendations),
            is_default=assessment.is_default,
            computed_at=assessment.computed_at,
        )

    model_config = {"json_schema_extra": {"example": {
        "assessment_id": "019478f2-1234-7000-8000-abcdef123456",
        "subject_id": "u-1",
        "subject_type": "user",
        "score": 55,
        "level": "High",
        "factors": [
            {"label": "admin_roles", "points": 20, "rationale": "2 admin roles (+20 points)"},
        ],
        "recommendations": ["Ensure privileged access is regularly reviewed"],
        "is_default": False,
        "computed_at": "2026-01-30T12:00:00Z",
    }}}


class OrganizationRiskStatsResponse(BaseModel):
    """Organization-wide risk statistics."""

    organization_id: str = Field(..., description="Organization identifier")
    average_risk: int = Field(..., ge=0, le=100, description="Mean user score")
    high_risk_count: int = Field(..., ge=0, description="Users at High level")
    critical_risk_count: int = Field(..., ge=0, description="Users at Critical level")
    total_users: int = Field(..., ge=0, description="Users scored")
    risk_distribution: dict[str, int] = Field(..., description="User count per risk level")
    computed_at: datetime = Field(..., description="When the statistics were computed")

    @classmethod
    def from_stats(cls, stats: OrganizationRiskStats) -> "OrganizationRiskStatsResponse":
        """Create from aggregator statistics."""
        return cls(**stats.to_dict())
