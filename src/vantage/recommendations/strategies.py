"""Recommendation strategies.

Each strategy reads facts through the provider and proposes recommendations
independently of the others. A strategy without enough data returns an empty
list; the engine handles a strategy that raises.
"""

import math
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from vantage.core.logging import get_logger
from vantage.facts.protocol import FactProvider
from vantage.facts.types import PeerProfile, RequestFacts, RequestStatus, as_utc
from vantage.recommendations.rules import (
    ACCESS_REVIEW_POLICY,
    ACCOUNTS_PAYABLE,
    ACCOUNTS_RECEIVABLE,
    BIRTHRIGHT_RULES,
    SOX_SOD_POLICY,
    birthright_resource_id,
    compliance_resource_id,
    estimate_permission_risk,
    estimate_role_risk,
    job_title_core,
    matching_role_patterns,
    percent,
)
from vantage.recommendations.types import (
    AutoApprovalCandidate,
    Recommendation,
    RecommendationPriority,
    RecommendationStrategy,
    RecommendationSubject,
    RecommendedResourceType,
)
from vantage.risk.risk_scorer import RiskLevel

if TYPE_CHECKING:
    from vantage.recommendations.engine import RecommenderConfig

logger = get_logger(__name__)


class BaseStrategy(ABC):
    """Base class for strategies that recommend access for a subject."""

    def __init__(self, provider: FactProvider, config: "RecommenderConfig"):
        self.provider = provider
        self.config = config

    @property
    @abstractmethod
    def strategy(self) -> RecommendationStrategy:
        """Strategy identifier."""
        ...

    @abstractmethod
    async def recommend(
        self, subject: RecommendationSubject, now: datetime
    ) -> list[Recommendation]:
        """Propose recommendations for the subject."""
        ...


def _role_frequency(peers: list[PeerProfile]) -> dict[str, tuple[str, int]]:
    """Count how many peers hold each role: role_id -> (role_name, count)."""
    frequency: dict[str, tuple[str, int]] = {}
    for peer in peers:
        for role in {r.role_id: r for r in peer.roles}.values():
            name, count = frequency.get(role.role_id, (role.role_name, 0))
            frequency[role.role_id] = (name, count + 1)
    return frequency


# =============================================================================
# Peer and department strategies
# =============================================================================


class PeerStrategy(BaseStrategy):
    """Roles common among users with the same department and job-title core."""

    @property
    def strategy(self) -> RecommendationStrategy:
        return RecommendationStrategy.PEER_BASED

    async def recommend(
        self, subject: RecommendationSubject, now: datetime
    ) -> list[Recommendation]:
        cfg = self.config
        if not subject.department:
            return []

        peers = await self.provider.get_peers(
            subject.department,
            job_title_core(subject.job_title) or None,
            subject.user_id or "",
            cfg.peer_limit,
        )
        if len(peers) < cfg.peer_min_peers:
            return []

        threshold = max(len(peers) * cfg.peer_share_threshold, cfg.peer_min_holders)
        held = subject.role_ids
        recommendations: list[Recommendation] = []

        for role_id, (role_name, count) in _role_frequency(peers).items():
            if role_id in held or count < threshold:
                continue
            share = count / len(peers)
            confidence = min(share, cfg.peer_confidence_cap)
            recommendations.append(
                Recommendation(
                    strategy=self.strategy,
                    resource_type=RecommendedResourceType.ROLE,
                    resource_id=role_id,
                    resource_name=role_name,
                    confidence=confidence,
                    reason=(
                        f"{percent(count, len(peers))}% of similar users ({count}/{len(peers)}) "
                        f"in {subject.department} have this role"
                    ),
                    priority=self._priority(confidence),
                    estimated_risk=estimate_role_risk(role_name),
                    user_id=subject.user_id,
                    title=f"Recommended Role: {role_name}",
                    description=(
                        "Based on peer analysis, this role is commonly assigned to similar users"
                    ),
                    auto_approve_eligible=True,
                    metadata={
                        "peer_count": len(peers),
                        "users_with_access": count,
                        "percentage": percent(count, len(peers)),
                        "department": subject.department,
                        "job_title": subject.job_title,
                    },
                )
            )
        return recommendations

    def _priority(self, confidence: float) -> RecommendationPriority:
        if confidence >= self.config.peer_high_priority:
            return RecommendationPriority.HIGH
        if confidence >= self.config.peer_medium_priority:
            return RecommendationPriority.MEDIUM
        return RecommendationPriority.LOW


class DepartmentStrategy(BaseStrategy):
    """Roles held by most of the subject's department."""

    @property
    def strategy(self) -> RecommendationStrategy:
        return RecommendationStrategy.DEPARTMENT_BASED

    async def recommend(
        self, subject: RecommendationSubject, now: datetime
    ) -> list[Recommendation]:
        cfg = self.config
        if not subject.department:
            return []

        members = await self.provider.get_peers(
            subject.department, None, subject.user_id or "", cfg.department_limit
        )
        if len(members) < cfg.department_min_members:
            return []

        threshold = len(members) * cfg.department_share_threshold
        held = subject.role_ids
        recommendations: list[Recommendation] = []

        for role_id, (role_name, count) in _role_frequency(members).items():
            if role_id in held or count < threshold:
                continue
            recommendations.append(
                Recommendation(
                    strategy=self.strategy,
                    resource_type=RecommendedResourceType.ROLE,
                    resource_id=role_id,
                    resource_name=role_name,
                    confidence=min(count / len(members), cfg.department_confidence_cap),
                    reason=(
                        f"{percent(count, len(members))}% of {subject.department} department "
                        f"({count}/{len(members)} users) have this access"
                    ),
                    priority=RecommendationPriority.MEDIUM,
                    estimated_risk=estimate_role_risk(role_name),
                    user_id=subject.user_id,
                    title=f"Department Standard: {role_name}",
                    description="Most of your department holds this role",
                    auto_approve_eligible=True,
                    metadata={
                        "department": subject.department,
                        "department_size": len(members),
                        "users_with_access": count,
                    },
                )
            )
        return recommendations


# =============================================================================
# Role strategies
# =============================================================================


class RoleStrategy(BaseStrategy):
    """Permissions of held roles that are not yet active for the subject."""

    @property
    def strategy(self) -> RecommendationStrategy:
        return RecommendationStrategy.ROLE_BASED

    async def recommend(
        self, subject: RecommendationSubject, now: datetime
    ) -> list[Recommendation]:
        if not subject.roles or not subject.user_id:
            return []

        active = await self.provider.get_active_permission_ids(subject.user_id)
        recommendations: list[Recommendation] = []
        seen: set[str] = set()

        for role in subject.roles:
            for permission in await self.provider.get_role_permissions(role.role_id):
                if permission.permission_id in active or permission.permission_id in seen:
                    continue
                seen.add(permission.permission_id)
                recommendations.append(
                    Recommendation(
                        strategy=self.strategy,
                        resource_type=RecommendedResourceType.PERMISSION,
                        resource_id=permission.permission_id,
                        resource_name=permission.name,
                        confidence=self.config.role_confidence,
                        reason=(
                            f'This permission is part of your "{role.role_name}" role '
                            "but not currently active"
                        ),
                        priority=RecommendationPriority.HIGH,
                        estimated_risk=estimate_permission_risk(permission.name),
                        user_id=subject.user_id,
                        title=f"Required Permission: {permission.name}",
                        description=(
                            permission.description or "Permission required for your assigned role"
                        ),
                        auto_approve_eligible=True,
                        metadata={"required_by_role": role.role_name, "role_id": role.role_id},
                    )
                )
        return recommendations


class RolePatternStrategy(BaseStrategy):
    """Catalog roles that a job title conventionally carries."""

    @property
    def strategy(self) -> RecommendationStrategy:
        return RecommendationStrategy.ROLE_BASED

    async def recommend(
        self, subject: RecommendationSubject, now: datetime
    ) -> list[Recommendation]:
        if not subject.organization_id:
            return []
        patterns = matching_role_patterns(subject.job_title)
        if not patterns:
            return []

        held_ids = subject.role_ids
        held_names = {role.role_name for role in subject.roles}
        recommendations: list[Recommendation] = []

        for pattern in patterns:
            catalog = await self.provider.find_roles_by_name(
                subject.organization_id, pattern.roles
            )
            for role in catalog:
                if role.role_id in held_ids or role.role_name in held_names:
                    continue
                recommendations.append(
                    Recommendation(
                        strategy=self.strategy,
                        resource_type=RecommendedResourceType.ROLE,
                        resource_id=role.role_id,
                        resource_name=role.role_name,
                        confidence=self.config.role_pattern_confidence,
                        reason=pattern.reason,
                        priority=RecommendationPriority.HIGH,
                        estimated_risk=estimate_role_risk(role.role_name),
                        user_id=subject.user_id,
                        title=f"Recommended Role: {role.role_name}",
                        description=f"Commonly assigned to the {subject.job_title} job title",
                        auto_approve_eligible=True,
                        metadata={"job_title": subject.job_title, "pattern": pattern.pattern},
                    )
                )
        return recommendations


# =============================================================================
# Policy strategies
# =============================================================================


class BirthrightStrategy(BaseStrategy):
    """Standard access every matching employee receives."""

    @property
    def strategy(self) -> RecommendationStrategy:
        return RecommendationStrategy.BIRTHRIGHT

    async def recommend(
        self, subject: RecommendationSubject, now: datetime
    ) -> list[Recommendation]:
        held_ids = subject.role_ids
        held_names = subject.role_names
        recommendations: list[Recommendation] = []

        for rule in BIRTHRIGHT_RULES:
            if not rule.applies(subject.department, subject.job_title):
                continue
            for name in rule.resources:
                resource_id = birthright_resource_id(name)
                if resource_id in held_ids or name.lower() in held_names:
                    continue
                recommendations.append(
                    Recommendation(
                        strategy=self.strategy,
                        resource_type=rule.resource_type,
                        resource_id=resource_id,
                        resource_name=name,
                        confidence=1.0,
                        reason=rule.reason,
                        priority=RecommendationPriority.MEDIUM,
                        estimated_risk=RiskLevel.LOW,
                        user_id=subject.user_id,
                        title=f"Birthright Access: {name}",
                        description=(
                            f"Standard access for all {subject.department or 'company'} employees"
                        ),
                        auto_approve_eligible=True,
                        metadata={"rule": rule.name, "policy": "Birthright access policy"},
                    )
                )
        return recommendations


class ComplianceStrategy(BaseStrategy):
    """Remediation required by compliance policies."""

    @property
    def strategy(self) -> RecommendationStrategy:
        return RecommendationStrategy.COMPLIANCE

    async def recommend(
        self, subject: RecommendationSubject, now: datetime
    ) -> list[Recommendation]:
        if not subject.user_id:
            return []

        recommendations: list[Recommendation] = []

        if (subject.department or "").strip().lower() == "finance":
            names = subject.role_names
            has_payable = any(ACCOUNTS_PAYABLE in n for n in names)
            has_receivable = any(ACCOUNTS_RECEIVABLE in n for n in names)
            if has_payable and has_receivable:
                recommendations.append(
                    self._violation(
                        subject,
                        SOX_SOD_POLICY,
                        "Remove either AP or AR access to maintain SOX compliance",
                    )
                )

        last_review = await self.provider.get_last_access_review(subject.user_id)
        if last_review is None:
            recommendations.append(
                self._violation(
                    subject, ACCESS_REVIEW_POLICY, "Access review required (no review on record)"
                )
            )
        else:
            days = math.floor((now - as_utc(last_review)).total_seconds() / 86400)
            if days > self.config.access_review_max_days:
                recommendations.append(
                    self._violation(
                        subject,
                        ACCESS_REVIEW_POLICY,
                        f"Access review overdue (last review: {days} days ago)",
                    )
                )

        return recommendations

    def _violation(
        self, subject: RecommendationSubject, policy: str, action: str
    ) -> Recommendation:
        return Recommendation(
            strategy=self.strategy,
            resource_type=RecommendedResourceType.PERMISSION,
            resource_id=compliance_resource_id(policy),
            resource_name=policy,
            confidence=1.0,
            reason=f"Required to maintain {policy}",
            priority=RecommendationPriority.CRITICAL,
            estimated_risk=RiskLevel.HIGH,
            user_id=subject.user_id,
            title=f"Compliance Action Required: {policy}",
            description=action,
            auto_approve_eligible=False,
            metadata={"compliance_requirement": policy},
        )


# =============================================================================
# Historical strategy
# =============================================================================


class HistoricalStrategy:
    """Approval guidance from past decisions on the same resource type."""

    strategy = RecommendationStrategy.HISTORICAL

    def __init__(self, provider: FactProvider, config: "RecommenderConfig"):
        self.provider = provider
        self.config = config

    async def recommend_for_request(
        self, request: RequestFacts, estimated_risk: RiskLevel
    ) -> list[Recommendation]:
        """Suggest APPROVE, REJECT or REVIEW for a pending request.

        Args:
            request: The request awaiting a decision.
            estimated_risk: Current risk level of the request.

        Returns:
            A single recommendation, or an empty list without history.
        """
        cfg = self.config
        decided = await self.provider.get_decided_requests(
            request.resource_type, cfg.historical_sample_size
        )
        if not decided:
            return []

        approved = sum(1 for r in decided if r.status == RequestStatus.APPROVED)
        rate = approved / len(decided)
        clear_pattern = rate >= cfg.historical_approve_rate or rate <= cfg.historical_reject_rate
        if rate >= cfg.historical_approve_rate:
            action = "APPROVE"
        elif rate <= cfg.historical_reject_rate:
            action = "REJECT"
        else:
            action = "REVIEW"

        return [
            Recommendation(
                strategy=self.strategy,
                resource_type=RecommendedResourceType.PERMISSION,
                resource_id=request.id,
                resource_name=request.resource_name,
                confidence=abs(rate - 0.5) * 2,
                reason=(
                    f"{percent(approved, len(decided))}% of similar requests for "
                    f'"{request.resource_type}" were approved'
                ),
                priority=(
                    RecommendationPriority.HIGH if clear_pattern else RecommendationPriority.MEDIUM
                ),
                estimated_risk=estimated_risk,
                user_id=request.subject_user_id,
                title=f"Approval Recommendation: {action}",
                description=f"Based on {len(decided)} similar requests",
                auto_approve_eligible=rate >= cfg.historical_auto_approve_rate,
                metadata={
                    "suggested_action": action,
                    "sample_size": len(decided),
                    "approval_rate": round(rate, 4),
                },
            )
        ]


# =============================================================================
# Auto-approval analytics
# =============================================================================


class AutoApprovalAnalysis:
    """Resources whose organization-wide decision history supports auto-approval."""

    def __init__(self, provider: FactProvider, config: "RecommenderConfig"):
        self.provider = provider
        self.config = config

    async def analyze(self, organization_id: str, now: datetime) -> list[AutoApprovalCandidate]:
        """Summarize decided requests per resource, best approval rate first.

        Resources with fewer than ``auto_approval_min_requests`` decisions in
        the window are omitted.
        """
        cfg = self.config
        since = now - timedelta(days=cfg.auto_approval_window_days)
        decided = await self.provider.get_organization_decisions(organization_id, since)

        by_resource: dict[str, list[RequestFacts]] = {}
        for request in decided:
            if request.status in (RequestStatus.APPROVED, RequestStatus.REJECTED):
                by_resource.setdefault(request.resource_key, []).append(request)

        candidates = [
            self._candidate(key, requests)
            for key, requests in by_resource.items()
            if len(requests) >= cfg.auto_approval_min_requests
        ]
        candidates.sort(key=lambda c: (-c.approval_rate, -c.total_requests))
        return candidates

    def _candidate(self, resource_id: str, requests: list[RequestFacts]) -> AutoApprovalCandidate:
        cfg = self.config
        total = len(requests)
        approved = [r for r in requests if r.status == RequestStatus.APPROVED]
        rate = percent(len(approved), total)
        recommend = (
            len(approved) / total >= cfg.auto_approval_rate
            and total >= cfg.auto_approval_min_sample
        )

        waits = [
            (r.decided_at - r.submitted_at).total_seconds() / 3600
            for r in approved
            if r.decided_at is not None
        ]
        average = round(sum(waits) / len(waits), 1) if waits else None

        if recommend:
            reason = (
                f"{rate}% approval rate over {total} requests suggests this is low-risk "
                "and can be auto-approved"
            )
        else:
            reason = f"{rate}% approval rate - needs human review"

        return AutoApprovalCandidate(
            resource_id=resource_id,
            resource_name=requests[0].resource_name,
            total_requests=total,
            approved_requests=len(approved),
            approval_rate=rate,
            average_approval_hours=average,
            recommend_auto_approve=recommend,
            reason=reason,
        )
