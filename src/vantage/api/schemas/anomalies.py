"""API schemas for anomaly detection and review."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from vantage.risk.anomaly_detector import Anomaly, AnomalySeverity, AnomalyType


class AnomalyResponse(BaseModel):
    """A detected behavioral anomaly."""

    id: str = Field(..., description="Anomaly identifier")
    type: AnomalyType = Field(..., description="Kind of anomaly")
    severity: AnomalySeverity = Field(..., description="Severity fixed at detection")
    title: str
    description: str
    user_id: str
    detected_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)
    reviewed: bool = False
    false_positive: bool = False
    reviewed_at: datetime | None = None

    @classmethod
    def from_anomaly(cls, anomaly: Anomaly) -> "AnomalyResponse":
        """Create from a detector anomaly."""
        return cls(
            id=anomaly.id,
            type=anomaly.type,
            severity=anomaly.severity,
            title=anomaly.title,
            description=anomaly.description,
            user_id=anomaly.user_id,
            detected_at=anomaly.detected_at,
            metadata=anomaly.metadata,
            reviewed=anomaly.reviewed,
            false_positive=anomaly.false_positive,
            reviewed_at=anomaly.reviewed_at,
        )


class AnomalyListResponse(BaseModel):
    """Anomalies for a user or an organization queue."""

    items: list[AnomalyResponse] = Field(default_factory=list)
    total: int = Field(..., ge=0)

    @classmethod
    def from_anomalies(cls, anomalies: list[Anomaly]) -> "AnomalyListResponse":
        return cls(
            items=[AnomalyResponse.from_anomaly(a) for a in anomalies],
            total=len(anomalies),
        )


class AnomalyReviewRequest(BaseModel):
    """Reviewer decision on an anomaly."""

    false_positive: bool = Field(
        default=False, description="Whether the anomaly is a false positive"
    )


class AnomalyReviewResponse(BaseModel):
    """Outcome of a review action."""

    anomaly_id: str
    reviewed: bool = Field(..., description="Whether the decision was stored")
    false_positive: bool


class OrganizationSweepResponse(BaseModel):
    """Findings of an organization-wide anomaly sweep."""

    organization_id: str
    users_with_findings: int = Field(..., ge=0)
    total_anomalies: int = Field(..., ge=0)
    findings: dict[str, list[AnomalyResponse]] = Field(
        default_factory=dict, description="Anomalies keyed by user id"
    )

    @classmethod
    def from_findings(
        cls, organization_id: str, findings: dict[str, list[Anomaly]]
    ) -> "OrganizationSweepResponse":
        return cls(
            organization_id=organization_id,
            users_with_findings=len(findings),
            total_anomalies=sum(len(v) for v in findings.values()),
            findings={
                user_id: [AnomalyResponse.from_anomaly(a) for a in anomalies]
                for user_id, anomalies in findings.items()
            },
        )
