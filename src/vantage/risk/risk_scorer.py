"""Risk Scorer for users and pending access requests.

This module provides the RiskScorer that:
1. Scores a user (0-100) from six weighted identity-hygiene factors
2. Scores an access request from resource sensitivity, requester risk,
   timing, SoD conflicts, urgency and justification quality
3. Derives the risk level from the score and attaches advisory actions
4. Degrades to a default assessment when facts cannot be fetched
"""

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field
from uuid_utils.compat import uuid7

from vantage.core.concurrency import gather_bounded
from vantage.core.identifiers import validate_identifier
from vantage.core.logging import get_logger
from vantage.facts.protocol import FactProvider
from vantage.facts.types import IdentityFacts, RequestFacts, ResourceType
from vantage.observability.metrics import observe_risk_score

logger = get_logger(__name__)


# =============================================================================
# Enums and Constants
# =============================================================================


class RiskLevel(str, Enum):
    """Risk level classification."""

    LOW = "Low"  # 0-24
    MEDIUM = "Medium"  # 25-49
    HIGH = "High"  # 50-74
    CRITICAL = "Critical"  # 75-100


MEDIUM_THRESHOLD = 25
HIGH_THRESHOLD = 50
CRITICAL_THRESHOLD = 75

# Base points and description per requested resource type
RESOURCE_TYPE_BASE_RISK: dict[ResourceType, tuple[int, str]] = {
    ResourceType.ADMIN_ROLE: (30, "Administrative role with elevated privileges"),
    ResourceType.PRIVILEGED_ACCOUNT: (28, "Privileged system account"),
    ResourceType.FINANCIAL_SYSTEM: (25, "Access to financial systems"),
    ResourceType.PRODUCTION_SYSTEM: (22, "Production environment access"),
    ResourceType.DATABASE_ADMIN: (26, "Database administrative access"),
    ResourceType.SECURITY_SYSTEM: (24, "Security system access"),
    ResourceType.HR_SYSTEM: (20, "HR system with PII data"),
    ResourceType.STANDARD_APPLICATION: (8, "Standard business application"),
    ResourceType.READ_ONLY: (5, "Read-only access"),
}

# Days reported for a user who has never logged in
NEVER_LOGGED_IN_DAYS = 999

UNABLE_TO_SCORE = "Unable to calculate risk score"


def risk_level_for_score(score: int) -> RiskLevel:
    """Map a 0-100 score onto its risk level."""
    if score >= CRITICAL_THRESHOLD:
        return RiskLevel.CRITICAL
    elif score >= HIGH_THRESHOLD:
        return RiskLevel.HIGH
    elif score >= MEDIUM_THRESHOLD:
        return RiskLevel.MEDIUM
    else:
        return RiskLevel.LOW


def resolve_resource_type(value: str | ResourceType) -> ResourceType | None:
    """Resolve a raw resource type string, or None when it is not a known type."""
    if isinstance(value, ResourceType):
        return value
    try:
        return ResourceType(value.strip().lower())
    except ValueError:
        return None


# =============================================================================
# Models
# =============================================================================


@dataclass(frozen=True)
class RiskFactor:
    """One explanation line of an assessment.

    Attributes:
        label: Stable machine-readable factor name.
        points: Points this factor contributed.
        rationale: Human-readable explanation.
    """

    label: str
    points: int
    rationale: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"label": self.label, "points": self.points, "rationale": self.rationale}


@dataclass
class RiskAssessment:
    """Risk score for a user or access request.

    The score is clamped to [0, 100] on construction and the level is always
    derived from it.

    Attributes:
        score: Composite risk score (0-100).
        factors: Contributing factors in evaluation order.
        recommendations: Advisory actions for reviewers.
        subject_id: User or request the assessment is for.
        subject_type: "user" or "request".
        computed_at: When the assessment was computed.
        assessment_id: Unique identifier for this assessment.
    """

    score: int = 0
    factors: list[RiskFactor] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    subject_id: str | None = None
    subject_type: str = "user"
    computed_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    assessment_id: str = field(default_factory=lambda: str(uuid7()))

    def __post_init__(self) -> None:
        self.score = max(0, min(100, int(self.score)))

    @property
    def level(self) -> RiskLevel:
        """Risk level derived from the score."""
        return risk_level_for_score(self.score)

    @property
    def is_default(self) -> bool:
        """Whether this is the fallback assessment for unavailable facts."""
        return len(self.factors) == 1 and self.factors[0].label == "unavailable"

    @classmethod
    def default(cls, subject_id: str | None = None, subject_type: str = "user") -> "RiskAssessment":
        """Assessment returned when facts cannot be fetched or scoring fails."""
        return cls(
            score=0,
            factors=[RiskFactor(label="unavailable", points=0, rationale=UNABLE_TO_SCORE)],
            recommendations=[],
            subject_id=subject_id,
            subject_type=subject_type,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "assessment_id": self.assessment_id,
            "subject_id": self.subject_id,
            "subject_type": self.subject_type,
            "score": self.score,
            "level": self.level.value,
            "factors": [f.to_dict() for f in self.factors],
            "recommendations": list(self.recommendations),
            "computed_at": self.computed_at.isoformat(),
        }


class ScorerConfig(BaseModel):
    """Configuration for risk scorer."""

    # User factors
    admin_role_points: int = Field(default=10, ge=0, le=100, description="Points per admin role")
    admin_role_cap: int = Field(default=30, ge=0, le=100, description="Cap for admin roles")
    privileged_access_points: int = Field(
        default=25, ge=0, le=100, description="Flat points for privileged access"
    )
    sod_violation_points: int = Field(
        default=10, ge=0, le=100, description="Points per SoD violation"
    )
    sod_violation_cap: int = Field(default=20, ge=0, le=100, description="Cap for SoD violations")
    dormant_days: int = Field(default=90, ge=1, description="Days without login to be dormant")
    dormant_points: int = Field(default=15, ge=0, le=100, description="Points for dormancy")
    low_activity_days: int = Field(
        default=60, ge=1, description="Days without login to be low activity"
    )
    low_activity_points: int = Field(default=8, ge=0, le=100, description="Points for low activity")
    failed_login_points: int = Field(
        default=2, ge=0, le=100, description="Points per failed login"
    )
    failed_login_cap: int = Field(default=10, ge=0, le=100, description="Cap for failed logins")
    role_baseline: int = Field(default=5, ge=0, description="Roles held before accumulation counts")
    excess_role_points: int = Field(
        default=2, ge=0, le=100, description="Points per role beyond the baseline"
    )
    excess_role_cap: int = Field(default=10, ge=0, le=100, description="Cap for role accumulation")

    # Advisory thresholds
    admin_review_count: int = Field(
        default=3, ge=1, description="Admin roles that trigger a necessity review"
    )
    compromise_failed_logins: int = Field(
        default=5, ge=1, description="Failed logins that suggest compromise"
    )
    monitoring_score: int = Field(
        default=25, ge=0, le=100, description="Score above which quiet users are still monitored"
    )

    # Request factors
    requester_weight: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Share of requester score carried over"
    )
    high_risk_requester_score: int = Field(
        default=75, ge=0, le=100, description="Requester score needing extra approval"
    )
    weekend_points: int = Field(default=12, ge=0, le=100, description="Points for weekend requests")
    off_hours_points: int = Field(
        default=10, ge=0, le=100, description="Points for weekday off-hours requests"
    )
    business_hours_start: int = Field(
        default=6, ge=0, le=23, description="First business hour (earlier is off-hours)"
    )
    business_hours_end: int = Field(
        default=22, ge=0, le=23, description="Last business hour (later is off-hours)"
    )
    sod_conflict_points: int = Field(
        default=10, ge=0, le=100, description="Points per SoD conflict"
    )
    sod_conflict_cap: int = Field(default=20, ge=0, le=100, description="Cap for SoD conflicts")
    urgent_priority_points: int = Field(
        default=5, ge=0, le=100, description="Points for High/Critical priority"
    )
    weak_justification_points: int = Field(
        default=10, ge=0, le=100, description="Points for missing or short justification"
    )
    min_justification_length: int = Field(
        default=20, ge=0, description="Minimum justification length in characters"
    )

    reference_timezone: str = Field(
        default="UTC", description="Zone used for weekend and off-hours evaluation"
    )

    # Batch scoring
    max_concurrency: int = Field(default=10, ge=1, description="Users scored concurrently")


# =============================================================================
# Risk Scorer
# =============================================================================


class RiskScorer:
    """Calculates risk scores for users and access requests.

    The scoring functions are pure: identical facts and the same ``now``
    always produce the same score, factors and recommendations. The async
    ``assess_*`` entry points fetch facts through the provider and never
    raise for data problems; they return the default assessment instead.

    Example:
        ```python
        scorer = RiskScorer(provider)

        user_risk = await scorer.assess_user("u-1")
        print(f"{user_risk.score} ({user_risk.level.value})")

        request_risk = await scorer.assess_request("req-9")
        ```
    """

    def __init__(self, provider: FactProvider, config: ScorerConfig | None = None):
        """Initialize the risk scorer.

        Args:
            provider: Source of identity and request facts.
            config: Scorer configuration.
        """
        self.provider = provider
        self.config = config or ScorerConfig()
        self._zone = ZoneInfo(self.config.reference_timezone)

    # -------------------------------------------------------------------------
    # Pure scoring
    # -------------------------------------------------------------------------

    def score_user(self, facts: IdentityFacts, now: datetime | None = None) -> RiskAssessment:
        """Score a user from their identity facts.

        Args:
            facts: Identity snapshot.
            now: Evaluation time (defaults to current UTC time).

        Returns:
            RiskAssessment for the user.
        """
        cfg = self.config
        now = now or datetime.now(UTC)
        score = 0
        factors: list[RiskFactor] = []
        recommendations: list[str] = []

        if facts.admin_role_count > 0:
            points = min(facts.admin_role_count * cfg.admin_role_points, cfg.admin_role_cap)
            score += points
            factors.append(
                RiskFactor(
                    "admin_roles",
                    points,
                    f"{_plural(facts.admin_role_count, 'admin role')} (+{points} points)",
                )
            )
            if facts.admin_role_count >= cfg.admin_review_count:
                recommendations.append("Review necessity of multiple admin roles")

        if facts.has_privileged_access:
            points = cfg.privileged_access_points
            score += points
            factors.append(
                RiskFactor(
                    "privileged_access", points, f"Has privileged system access (+{points} points)"
                )
            )
            recommendations.append("Ensure privileged access is regularly reviewed")

        if facts.sod_violation_count > 0:
            points = min(
                facts.sod_violation_count * cfg.sod_violation_points, cfg.sod_violation_cap
            )
            score += points
            factors.append(
                RiskFactor(
                    "sod_violations",
                    points,
                    f"{_plural(facts.sod_violation_count, 'SoD violation')} (+{points} points)",
                )
            )
            recommendations.append("Remediate segregation of duties conflicts immediately")

        days_since_login = _days_since(facts.last_login_at, now)
        if days_since_login > cfg.dormant_days:
            points = cfg.dormant_points
            score += points
            factors.append(
                RiskFactor(
                    "dormant_account",
                    points,
                    f"Inactive for {days_since_login} days (+{points} points)",
                )
            )
            recommendations.append("Review account - consider disabling dormant access")
        elif days_since_login > cfg.low_activity_days:
            points = cfg.low_activity_points
            score += points
            factors.append(
                RiskFactor(
                    "low_activity",
                    points,
                    f"Low activity - {days_since_login} days since last login (+{points} points)",
                )
            )

        if facts.failed_login_attempts > 0:
            points = min(
                facts.failed_login_attempts * cfg.failed_login_points, cfg.failed_login_cap
            )
            score += points
            factors.append(
                RiskFactor(
                    "failed_logins",
                    points,
                    f"{_plural(facts.failed_login_attempts, 'failed login attempt')} "
                    f"(+{points} points)",
                )
            )
            if facts.failed_login_attempts >= cfg.compromise_failed_logins:
                recommendations.append("Investigate potential account compromise")

        if facts.total_role_count > cfg.role_baseline:
            excess = facts.total_role_count - cfg.role_baseline
            points = min(excess * cfg.excess_role_points, cfg.excess_role_cap)
            score += points
            factors.append(
                RiskFactor(
                    "role_accumulation",
                    points,
                    f"{facts.total_role_count} total roles - potential over-provisioning "
                    f"(+{points} points)",
                )
            )
            recommendations.append("Review all role assignments for least privilege")

        score = min(score, 100)
        if not recommendations and score > cfg.monitoring_score:
            recommendations.append("Continue monitoring user activity")

        assessment = RiskAssessment(
            score=score,
            factors=factors,
            recommendations=recommendations,
            subject_id=facts.id,
            subject_type="user",
            computed_at=now,
        )
        observe_risk_score(assessment.score, assessment.level.value, subject_type="user")
        return assessment

    def score_request(
        self,
        facts: RequestFacts,
        requester_assessment: RiskAssessment | None = None,
        now: datetime | None = None,
    ) -> RiskAssessment:
        """Score an access request.

        Args:
            facts: The access request.
            requester_assessment: Current assessment of the requester, if known.
            now: Evaluation time recorded on the assessment.

        Returns:
            RiskAssessment for the request.
        """
        cfg = self.config
        score = 0
        factors: list[RiskFactor] = []
        recommendations: list[str] = []

        resource_type = resolve_resource_type(facts.resource_type)
        if resource_type is None:
            logger.warning(
                "Unknown resource type, scoring as standard application",
                request_id=facts.id,
                resource_type=facts.resource_type,
            )
            resource_type = ResourceType.STANDARD_APPLICATION
        points, description = RESOURCE_TYPE_BASE_RISK[resource_type]
        score += points
        factors.append(RiskFactor("resource_type", points, f"{description} (+{points} points)"))

        requester_score = requester_assessment.score if requester_assessment else 0
        if requester_score:
            points = _round_half_up(requester_score * cfg.requester_weight)
            score += points
            factors.append(
                RiskFactor(
                    "requester_risk",
                    points,
                    f"Requester risk score: {requester_score}/100 (+{points} points)",
                )
            )
            if requester_score >= cfg.high_risk_requester_score:
                recommendations.append(
                    "High-risk user requesting access - require additional approval"
                )

        submitted = facts.submitted_at.astimezone(self._zone)
        if submitted.weekday() >= 5:
            points = cfg.weekend_points
            score += points
            factors.append(
                RiskFactor("weekend_request", points, f"Weekend request (+{points} points)")
            )
            recommendations.append("Verify legitimacy of weekend access request")
        elif submitted.hour < cfg.business_hours_start or submitted.hour > cfg.business_hours_end:
            points = cfg.off_hours_points
            score += points
            factors.append(
                RiskFactor(
                    "off_hours_request",
                    points,
                    f"Off-hours request ({submitted.hour}:00) (+{points} points)",
                )
            )

        if facts.sod_conflict_count > 0:
            points = min(facts.sod_conflict_count * cfg.sod_conflict_points, cfg.sod_conflict_cap)
            score += points
            factors.append(
                RiskFactor(
                    "sod_conflicts",
                    points,
                    f"{_plural(facts.sod_conflict_count, 'SoD conflict')} detected "
                    f"(+{points} points)",
                )
            )
            recommendations.append(
                "CRITICAL: Granting this access creates segregation of duties violations"
            )

        if facts.priority.strip().lower() in ("high", "critical"):
            points = cfg.urgent_priority_points
            score += points
            factors.append(
                RiskFactor("urgent_priority", points, f"High priority request (+{points} points)")
            )
            recommendations.append("Expedited request - verify urgency is justified")

        if facts.business_justification_length < cfg.min_justification_length:
            points = cfg.weak_justification_points
            score += points
            factors.append(
                RiskFactor(
                    "weak_justification",
                    points,
                    f"Insufficient business justification (+{points} points)",
                )
            )
            recommendations.append("Request additional business justification from requester")

        score = min(score, 100)
        if score >= CRITICAL_THRESHOLD:
            recommendations.append("Require executive or security team approval")
        elif score >= HIGH_THRESHOLD:
            recommendations.append("Require manager + secondary approver")

        assessment = RiskAssessment(
            score=score,
            factors=factors,
            recommendations=recommendations,
            subject_id=facts.id,
            subject_type="request",
            computed_at=now or datetime.now(UTC),
        )
        observe_risk_score(assessment.score, assessment.level.value, subject_type="request")
        return assessment

    # -------------------------------------------------------------------------
    # Provider-backed entry points
    # -------------------------------------------------------------------------

    async def assess_user(self, user_id: str) -> RiskAssessment:
        """Fetch a user's facts and score them.

        Raises:
            IdentifierValidationError: If the user id is malformed.
        """
        validate_identifier("user_id", user_id)
        try:
            facts = await self.provider.get_identity_facts(user_id)
            return self.score_user(facts)
        except Exception as e:
            logger.warning("User risk scoring failed", user_id=user_id, error=str(e))
            return RiskAssessment.default(user_id, "user")

    async def assess_request(self, request_id: str) -> RiskAssessment:
        """Fetch a request and its requester's facts and score the request.

        Raises:
            IdentifierValidationError: If the request id is malformed.
        """
        validate_identifier("request_id", request_id)
        try:
            facts = await self.provider.get_request_facts(request_id)
            requester = await self.assess_user(facts.requester_id)
            return self.score_request(facts, requester)
        except Exception as e:
            logger.warning("Request risk scoring failed", request_id=request_id, error=str(e))
            return RiskAssessment.default(request_id, "request")

    async def assess_users(self, user_ids: list[str]) -> dict[str, RiskAssessment]:
        """Score many users with bounded concurrency.

        A user whose scoring fails (including a malformed id) receives the
        default assessment; the batch always completes.

        Args:
            user_ids: Users to score.

        Returns:
            Mapping of user id to assessment.
        """
        results = await gather_bounded(user_ids, self.assess_user, self.config.max_concurrency)
        assessments: dict[str, RiskAssessment] = {}
        for user_id, result in zip(user_ids, results):
            if isinstance(result, BaseException):
                logger.warning("Batch user scoring failed", user_id=user_id, error=str(result))
                assessments[user_id] = RiskAssessment.default(user_id, "user")
            else:
                assessments[user_id] = result
        return assessments


# =============================================================================
# Helpers
# =============================================================================


def _days_since(moment: datetime | None, now: datetime) -> int:
    """Whole days elapsed since ``moment``; never-seen counts as 999."""
    if moment is None:
        return NEVER_LOGGED_IN_DAYS
    return math.floor((now - moment).total_seconds() / 86400)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


def create_risk_scorer(provider: FactProvider, config: ScorerConfig | None = None) -> RiskScorer:
    """Create a risk scorer.

    Args:
        provider: Source of identity and request facts.
        config: Optional scorer configuration.

    Returns:
        Configured RiskScorer.
    """
    return RiskScorer(provider, config=config)
