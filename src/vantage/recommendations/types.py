"""Types for the recommendation engine.

Recommendation results are dataclasses with a ``to_dict()`` serializer.
Whether a recommendation can be auto-approved is derived, never set: the
strategy only declares eligibility and the confidence and risk gates apply
on top.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from uuid_utils.compat import uuid7

from vantage.facts.types import IdentityFacts, RoleGrant
from vantage.risk.risk_scorer import RiskLevel

# Minimum confidence for any auto-approval
AUTO_APPROVE_MIN_CONFIDENCE = 0.9

# Risk levels low enough for auto-approval and onboarding packages
AUTO_APPROVE_RISK_LEVELS: frozenset[RiskLevel] = frozenset({RiskLevel.LOW, RiskLevel.MEDIUM})


class RecommendationStrategy(str, Enum):
    """Strategy that produced a recommendation."""

    PEER_BASED = "peer_based"
    ROLE_BASED = "role_based"
    DEPARTMENT_BASED = "department_based"
    BIRTHRIGHT = "birthright"
    COMPLIANCE = "compliance"
    HISTORICAL = "historical"


class RecommendationPriority(str, Enum):
    """Priority of a recommendation."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Sort rank, higher is more urgent."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    RecommendationPriority.LOW: 1,
    RecommendationPriority.MEDIUM: 2,
    RecommendationPriority.HIGH: 3,
    RecommendationPriority.CRITICAL: 4,
}


class RecommendedResourceType(str, Enum):
    """Kind of resource a recommendation refers to."""

    ROLE = "role"
    PERMISSION = "permission"
    APPLICATION = "application"
    ENTITLEMENT = "entitlement"


@dataclass
class Recommendation:
    """A ranked access recommendation.

    Attributes:
        strategy: Strategy that produced it.
        resource_type: Kind of resource recommended.
        resource_id: Resource identifier; with resource_type forms the dedup key.
        resource_name: Display name of the resource.
        confidence: Confidence in [0, 1].
        reason: Human-readable justification.
        priority: Urgency.
        estimated_risk: Estimated risk of granting the resource.
        user_id: User the recommendation is for, when known.
        title: Short headline.
        description: Longer explanation.
        actionable: Whether a reviewer can act on it directly.
        auto_approve_eligible: Whether the strategy permits auto-approval.
        metadata: Supporting data (peer counts, rates, policy names).
        id: Unique identifier.
        created_at: Creation time.
    """

    strategy: RecommendationStrategy
    resource_type: RecommendedResourceType
    resource_id: str
    resource_name: str
    confidence: float
    reason: str
    priority: RecommendationPriority
    estimated_risk: RiskLevel = RiskLevel.LOW
    user_id: str | None = None
    title: str = ""
    description: str = ""
    actionable: bool = True
    auto_approve_eligible: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid7()))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        self.confidence = max(0.0, min(1.0, float(self.confidence)))

    @property
    def dedup_key(self) -> tuple[str, str]:
        """Key under which duplicate recommendations are merged."""
        return (self.resource_type.value, self.resource_id)

    @property
    def auto_approvable(self) -> bool:
        """Eligible, confident enough, and no riskier than Medium."""
        return (
            self.auto_approve_eligible
            and self.confidence >= AUTO_APPROVE_MIN_CONFIDENCE
            and self.estimated_risk in AUTO_APPROVE_RISK_LEVELS
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "strategy": self.strategy.value,
            "user_id": self.user_id,
            "resource_type": self.resource_type.value,
            "resource_id": self.resource_id,
            "resource_name": self.resource_name,
            "title": self.title,
            "description": self.description,
            "reason": self.reason,
            "confidence": self.confidence,
            "priority": self.priority.value,
            "estimated_risk": self.estimated_risk.value,
            "actionable": self.actionable,
            "auto_approvable": self.auto_approvable,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class RecommendationSubject:
    """The user (or prospective hire) recommendations are computed for."""

    user_id: str | None
    department: str | None = None
    job_title: str | None = None
    organization_id: str | None = None
    roles: list[RoleGrant] = field(default_factory=list)

    @classmethod
    def from_facts(cls, facts: IdentityFacts, roles: list[RoleGrant]) -> "RecommendationSubject":
        return cls(
            user_id=facts.id,
            department=facts.department,
            job_title=facts.job_title,
            organization_id=facts.organization_id,
            roles=list(roles),
        )

    @property
    def role_ids(self) -> set[str]:
        return {role.role_id for role in self.roles}

    @property
    def role_names(self) -> set[str]:
        """Held role names, lowercased."""
        return {role.role_name.lower() for role in self.roles}


@dataclass
class AutoApprovalCandidate:
    """Decision history of one resource across an organization.

    Attributes:
        resource_id: Requested resource (its name when the store has no id).
        resource_name: Display name of the resource.
        total_requests: Approved plus rejected requests in the window.
        approved_requests: Approved requests in the window.
        approval_rate: Whole-percent approval rate.
        average_approval_hours: Mean submit-to-approval time, when recorded.
        recommend_auto_approve: Whether the history supports auto-approval.
        reason: Human-readable justification.
    """

    resource_id: str
    resource_name: str
    total_requests: int
    approved_requests: int
    approval_rate: int
    average_approval_hours: float | None
    recommend_auto_approve: bool
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "resource_name": self.resource_name,
            "total_requests": self.total_requests,
            "approved_requests": self.approved_requests,
            "approval_rate": self.approval_rate,
            "average_approval_hours": self.average_approval_hours,
            "recommend_auto_approve": self.recommend_auto_approve,
            "reason": self.reason,
        }
