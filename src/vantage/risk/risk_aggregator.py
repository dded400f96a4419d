"""Organization-wide risk statistics.

Scores every user of an organization with bounded concurrency and folds the
assessments into summary statistics for dashboards.
"""

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from time import perf_counter
from typing import Any

from pydantic import BaseModel, Field

from vantage.core.concurrency import gather_bounded
from vantage.core.identifiers import validate_identifier
from vantage.core.logging import LogContext, get_logger
from vantage.facts.protocol import FactProvider
from vantage.observability.metrics import observe_batch_duration
from vantage.risk.risk_scorer import RiskAssessment, RiskLevel, RiskScorer

logger = get_logger(__name__)


def _empty_distribution() -> dict[str, int]:
    return {level.value: 0 for level in RiskLevel}


@dataclass
class OrganizationRiskStats:
    """Summary of current risk across an organization.

    Attributes:
        organization_id: Organization the statistics describe.
        average_risk: Mean user score, rounded half up.
        high_risk_count: Users at High level.
        critical_risk_count: Users at Critical level.
        total_users: Users scored.
        risk_distribution: User count per risk level.
        computed_at: When the statistics were computed.
    """

    organization_id: str
    average_risk: int = 0
    high_risk_count: int = 0
    critical_risk_count: int = 0
    total_users: int = 0
    risk_distribution: dict[str, int] = field(default_factory=_empty_distribution)
    computed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "organization_id": self.organization_id,
            "average_risk": self.average_risk,
            "high_risk_count": self.high_risk_count,
            "critical_risk_count": self.critical_risk_count,
            "total_users": self.total_users,
            "risk_distribution": dict(self.risk_distribution),
            "computed_at": self.computed_at.isoformat(),
        }


class AggregatorConfig(BaseModel):
    """Configuration for risk aggregator."""

    max_concurrency: int = Field(default=10, ge=1, description="Users scored concurrently")


class RiskAggregator:
    """Computes organization risk statistics from per-user assessments.

    Example:
        ```python
        aggregator = RiskAggregator(provider)
        stats = await aggregator.get_organization_stats("org-1")
        print(stats.average_risk, stats.risk_distribution)
        ```
    """

    def __init__(
        self,
        provider: FactProvider,
        scorer: RiskScorer | None = None,
        config: AggregatorConfig | None = None,
    ):
        """Initialize the aggregator.

        Args:
            provider: Source of organization membership and identity facts.
            scorer: Scorer used per user (defaults to one over the same provider).
            config: Aggregator configuration.
        """
        self.provider = provider
        self.scorer = scorer or RiskScorer(provider)
        self.config = config or AggregatorConfig()

    async def get_organization_stats(self, organization_id: str) -> OrganizationRiskStats:
        """Score every user in the organization and summarize.

        A user whose scoring fails counts with the default assessment. When
        membership cannot be listed the empty statistics are returned.

        Raises:
            IdentifierValidationError: If the organization id is malformed.
        """
        validate_identifier("organization_id", organization_id)
        with LogContext(operation="org_risk_stats", organization_id=organization_id):
            return await self._compute_stats(organization_id)

    async def _compute_stats(self, organization_id: str) -> OrganizationRiskStats:
        start = perf_counter()
        try:
            user_ids = await self.provider.list_organization_users(organization_id)
        except Exception as e:
            logger.warning(
                "Organization user listing failed", organization_id=organization_id, error=str(e)
            )
            return OrganizationRiskStats(organization_id=organization_id)

        results = await gather_bounded(
            user_ids, self.scorer.assess_user, self.config.max_concurrency
        )
        assessments: list[RiskAssessment] = []
        for user_id, result in zip(user_ids, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "User scoring failed in aggregation", user_id=user_id, error=str(result)
                )
                assessments.append(RiskAssessment.default(user_id, "user"))
            else:
                assessments.append(result)

        stats = summarize(organization_id, assessments)
        observe_batch_duration("organization_risk_stats", perf_counter() - start)
        logger.info(
            "Organization risk stats computed",
            organization_id=organization_id,
            total_users=stats.total_users,
            average_risk=stats.average_risk,
        )
        return stats


def summarize(organization_id: str, assessments: list[RiskAssessment]) -> OrganizationRiskStats:
    """Fold user assessments into organization statistics."""
    if not assessments:
        return OrganizationRiskStats(organization_id=organization_id)

    distribution = _empty_distribution()
    for assessment in assessments:
        distribution[assessment.level.value] += 1

    total = sum(a.score for a in assessments)
    return OrganizationRiskStats(
        organization_id=organization_id,
        average_risk=math.floor(total / len(assessments) + 0.5),
        high_risk_count=distribution[RiskLevel.HIGH.value],
        critical_risk_count=distribution[RiskLevel.CRITICAL.value],
        total_users=len(assessments),
        risk_distribution=distribution,
    )


def create_risk_aggregator(
    provider: FactProvider,
    scorer: RiskScorer | None = None,
    config: AggregatorConfig | None = None,
) -> RiskAggregator:
    """Create a risk aggregator."""
    return RiskAggregator(provider, scorer=scorer, config=config)
