"""Recommendation Engine combining independent access strategies.

This module provides the RecommendationEngine that:
1. Runs the peer, role, role-pattern, department, birthright and compliance
   strategies concurrently for a user, isolating failures per strategy
2. Merges duplicates by (resource_type, resource_id), keeping the most
   confident recommendation
3. Ranks by priority, then confidence
4. Offers approval guidance for pending requests from decision history
5. Builds new-hire packages from peer and birthright access
6. Reports resources whose decision history supports auto-approval
"""

import asyncio
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from vantage.core.identifiers import validate_identifier
from vantage.core.logging import get_logger
from vantage.facts.protocol import FactProvider
from vantage.observability.metrics import record_recommendation, record_strategy_failure
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
    AUTO_APPROVE_RISK_LEVELS,
    AutoApprovalCandidate,
    Recommendation,
    RecommendationSubject,
)
from vantage.risk.risk_scorer import RiskLevel, RiskScorer

logger = get_logger(__name__)


class RecommenderConfig(BaseModel):
    """Configuration for recommendation engine."""

    # Peer strategy
    peer_limit: int = Field(default=50, ge=1, description="Peers fetched per user")
    peer_min_peers: int = Field(default=3, ge=1, description="Peers needed to recommend")
    peer_share_threshold: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Share of peers that must hold a role"
    )
    peer_min_holders: int = Field(default=3, ge=1, description="Peers that must hold a role")
    peer_confidence_cap: float = Field(default=0.95, ge=0.0, le=1.0, description="Confidence cap")
    # 0.75 rather than 0.8: three of four same-title peers (confidence 0.75)
    # must rank as high priority.
    peer_high_priority: float = Field(
        default=0.75, ge=0.0, le=1.0, description="Confidence for high priority"
    )
    peer_medium_priority: float = Field(
        default=0.6, ge=0.0, le=1.0, description="Confidence for medium priority"
    )

    # Role strategy
    role_confidence: float = Field(
        default=0.95, ge=0.0, le=1.0, description="Confidence for missing role permissions"
    )
    role_pattern_confidence: float = Field(
        default=0.85, ge=0.0, le=1.0, description="Confidence for job-title role patterns"
    )

    # Department strategy
    department_limit: int = Field(default=500, ge=1, description="Department members fetched")
    department_min_members: int = Field(default=5, ge=1, description="Members needed to recommend")
    department_share_threshold: float = Field(
        default=0.7, ge=0.0, le=1.0, description="Share of department that must hold a role"
    )
    department_confidence_cap: float = Field(
        default=0.9, ge=0.0, le=1.0, description="Confidence cap"
    )

    # Compliance strategy
    access_review_max_days: int = Field(
        default=90, ge=1, description="Days after which an access review is overdue"
    )

    # Historical strategy
    historical_sample_size: int = Field(default=100, ge=1, description="Decided requests compared")
    historical_approve_rate: float = Field(
        default=0.7, ge=0.0, le=1.0, description="Approval rate suggesting APPROVE"
    )
    historical_reject_rate: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Approval rate suggesting REJECT"
    )
    historical_auto_approve_rate: float = Field(
        default=0.95, ge=0.0, le=1.0, description="Approval rate eligible for auto-approval"
    )

    # Auto-approval analytics
    auto_approval_window_days: int = Field(default=90, ge=1, description="Decision history window")
    auto_approval_min_requests: int = Field(
        default=10, ge=1, description="Decisions needed to report a resource"
    )
    auto_approval_min_sample: int = Field(
        default=20, ge=1, description="Decisions needed to recommend auto-approval"
    )
    auto_approval_rate: float = Field(
        default=0.95, ge=0.0, le=1.0, description="Approval rate needed to recommend auto-approval"
    )

    # Onboarding
    onboarding_min_confidence: float = Field(
        default=0.8, ge=0.0, le=1.0, description="Confidence needed for a new-hire package"
    )

    # Execution
    strategy_timeout_seconds: float | None = Field(
        default=10.0, gt=0, description="Per-strategy timeout; None disables it"
    )


# =============================================================================
# Ranking
# =============================================================================


def deduplicate(recommendations: Iterable[Recommendation]) -> list[Recommendation]:
    """Merge by (resource_type, resource_id), keeping the highest confidence.

    On equal confidence the first recommendation seen is kept.
    """
    best: dict[tuple[str, str], Recommendation] = {}
    for rec in recommendations:
        existing = best.get(rec.dedup_key)
        if existing is None or rec.confidence > existing.confidence:
            best[rec.dedup_key] = rec
    return list(best.values())


def rank(recommendations: Iterable[Recommendation]) -> list[Recommendation]:
    """Order by priority (critical first), then confidence descending."""
    return sorted(recommendations, key=lambda r: (-r.priority.rank, -r.confidence))


# =============================================================================
# Recommendation Engine
# =============================================================================


class RecommendationEngine:
    """Produces ranked access recommendations.

    Example:
        ```python
        engine = RecommendationEngine(provider)

        for rec in await engine.get_recommendations("u-1"):
            print(rec.priority.value, rec.resource_name, rec.confidence)

        guidance = await engine.get_approval_recommendations("req-9")
        package = await engine.get_onboarding_recommendations("Finance", "Analyst")
        ```
    """

    def __init__(
        self,
        provider: FactProvider,
        config: RecommenderConfig | None = None,
        scorer: RiskScorer | None = None,
    ):
        """Initialize the recommendation engine.

        Args:
            provider: Source of identity, role and request facts.
            config: Engine configuration.
            scorer: Scorer used to estimate request risk for approval guidance.
        """
        self.provider = provider
        self.config = config or RecommenderConfig()
        self.scorer = scorer or RiskScorer(provider)

        self.peer = PeerStrategy(provider, self.config)
        self.role = RoleStrategy(provider, self.config)
        self.role_pattern = RolePatternStrategy(provider, self.config)
        self.department = DepartmentStrategy(provider, self.config)
        self.birthright = BirthrightStrategy(provider, self.config)
        self.compliance = ComplianceStrategy(provider, self.config)
        self.historical = HistoricalStrategy(provider, self.config)
        self.auto_approval = AutoApprovalAnalysis(provider, self.config)

    @property
    def strategies(self) -> list[BaseStrategy]:
        """Strategies combined for an existing user."""
        return [
            self.peer,
            self.role,
            self.role_pattern,
            self.department,
            self.birthright,
            self.compliance,
        ]

    async def get_recommendations(
        self, user_id: str, now: datetime | None = None
    ) -> list[Recommendation]:
        """Get ranked recommendations for a user.

        Args:
            user_id: User to recommend access for.
            now: Evaluation time (defaults to current UTC time).

        Returns:
            Deduplicated, ranked recommendations; empty if the user's facts
            cannot be fetched.

        Raises:
            IdentifierValidationError: If the user id is malformed.
        """
        validate_identifier("user_id", user_id)
        now = now or datetime.now(UTC)
        try:
            facts = await self.provider.get_identity_facts(user_id)
            roles = await self.provider.get_user_roles(user_id)
        except Exception as e:
            logger.warning("Recommendation facts unavailable", user_id=user_id, error=str(e))
            return []

        subject = RecommendationSubject.from_facts(facts, roles)
        collected = await self._run_strategies(self.strategies, subject, now)
        result = rank(deduplicate(collected))
        self._record(result)

        logger.info(
            "Recommendations generated",
            user_id=user_id,
            total=len(result),
            candidates=len(collected),
        )
        return result

    async def get_approval_recommendations(self, request_id: str) -> list[Recommendation]:
        """Get historical approval guidance for a pending request.

        Returns:
            At most one recommendation; empty without history or when the
            request cannot be fetched.

        Raises:
            IdentifierValidationError: If the request id is malformed.
        """
        validate_identifier("request_id", request_id)
        try:
            request = await self.provider.get_request_facts(request_id)
            assessment = await self.scorer.assess_request(request_id)
            estimated_risk = RiskLevel.MEDIUM if assessment.is_default else assessment.level
            result = await self.historical.recommend_for_request(request, estimated_risk)
        except Exception as e:
            record_strategy_failure(self.historical.strategy.value)
            logger.warning("Approval recommendation failed", request_id=request_id, error=str(e))
            return []

        self._record(result)
        return result

    async def get_onboarding_recommendations(
        self,
        department: str,
        job_title: str,
        user_id: str | None = None,
        now: datetime | None = None,
    ) -> list[Recommendation]:
        """Build a new-hire access package.

        Only confident, low-risk peer and birthright recommendations are kept.

        Args:
            department: Department of the new hire.
            job_title: Job title of the new hire.
            user_id: Identifier of the new hire, if already provisioned.
            now: Evaluation time.

        Returns:
            Ranked recommendations suitable for provisioning.
        """
        if user_id is not None:
            validate_identifier("user_id", user_id)
        subject = RecommendationSubject(user_id=user_id, department=department, job_title=job_title)
        collected = await self._run_strategies(
            [self.peer, self.birthright], subject, now or datetime.now(UTC)
        )
        package = [
            rec
            for rec in deduplicate(collected)
            if rec.confidence >= self.config.onboarding_min_confidence
            and rec.estimated_risk in AUTO_APPROVE_RISK_LEVELS
        ]
        return rank(package)

    async def get_auto_approval_candidates(
        self, organization_id: str, now: datetime | None = None
    ) -> list[AutoApprovalCandidate]:
        """Report which resources an organization could approve automatically.

        Args:
            organization_id: Organization whose decision history is analyzed.
            now: End of the analysis window.

        Returns:
            Per-resource approval statistics, highest approval rate first;
            empty when the history cannot be fetched.

        Raises:
            IdentifierValidationError: If the organization id is malformed.
        """
        validate_identifier("organization_id", organization_id)
        try:
            candidates = await self.auto_approval.analyze(organization_id, now or datetime.now(UTC))
        except Exception as e:
            logger.warning(
                "Auto-approval analysis failed", organization_id=organization_id, error=str(e)
            )
            return []

        logger.info(
            "Auto-approval analysis completed",
            organization_id=organization_id,
            resources=len(candidates),
            recommended=sum(1 for c in candidates if c.recommend_auto_approve),
        )
        return candidates

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _run_strategies(
        self,
        strategies: Sequence[BaseStrategy],
        subject: RecommendationSubject,
        now: datetime,
    ) -> list[Recommendation]:
        timeout = self.config.strategy_timeout_seconds
        results = await asyncio.gather(
            *(asyncio.wait_for(s.recommend(subject, now), timeout) for s in strategies),
            return_exceptions=True,
        )

        collected: list[Recommendation] = []
        for strategy, result in zip(strategies, results):
            if isinstance(result, BaseException):
                record_strategy_failure(strategy.strategy.value)
                logger.warning(
                    "Recommendation strategy failed",
                    strategy=strategy.strategy.value,
                    user_id=subject.user_id,
                    error_type=type(result).__name__,
                    error=str(result),
                )
            else:
                collected.extend(result)
        return collected

    def _record(self, recommendations: list[Recommendation]) -> None:
        for rec in recommendations:
            record_recommendation(rec.strategy.value, rec.priority.value)


def create_recommendation_engine(
    provider: FactProvider,
    config: RecommenderConfig | None = None,
    scorer: RiskScorer | None = None,
) -> RecommendationEngine:
    """Create a recommendation engine.

    Args:
        provider: Source of identity, role and request facts.
        config: Optional engine configuration.
        scorer: Optional scorer for request risk estimates.

    Returns:
        Configured RecommendationEngine.
    """
    return RecommendationEngine(provider, config=config, scorer=scorer)
