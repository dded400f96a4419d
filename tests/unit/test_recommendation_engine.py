"""Unit tests for the RecommendationEngine and its strategies."""

import asyncio
from datetime import datetime, timedelta

import pytest
from prometheus_client import REGISTRY

from vantage.core.exceptions import DataUnavailableError, IdentifierValidationError
from vantage.facts.memory import InMemoryFactProvider
from vantage.facts.types import (
    IdentityFacts,
    PermissionRef,
    RequestFacts,
    RequestStatus,
    RoleRef,
)
from vantage.recommendations import (
    Recommendation,
    RecommendationEngine,
    RecommendationPriority,
    RecommendationStrategy,
    RecommendationSubject,
    RecommendedResourceType,
    RecommenderConfig,
    create_recommendation_engine,
    deduplicate,
    rank,
)
from vantage.risk.risk_scorer import RiskLevel

from conftest import NOW, role

# =============================================================================
# Fixtures
# =============================================================================


class BrokenReviewProvider(InMemoryFactProvider):
    """Provider that cannot read access review history."""

    async def get_last_access_review(self, user_id):
        raise DataUnavailableError("down", query="get_last_access_review", subject_id=user_id)


class NaiveReviewProvider(InMemoryFactProvider):
    """Provider whose review store returns timestamps without an offset."""

    async def get_last_access_review(self, user_id):
        return datetime(2025, 11, 1, 12, 0)


class BrokenDecisionProvider(InMemoryFactProvider):
    """Provider that cannot read organization decision history."""

    async def get_organization_decisions(self, organization_id, since):
        raise DataUnavailableError("down", query="get_organization_decisions")


class SlowPeerProvider(InMemoryFactProvider):
    """Provider whose peer query never answers in time."""

    async def get_peers(self, department, job_title_core, exclude_user_id, limit):
        await asyncio.sleep(5)
        return []


def add_person(
    provider: InMemoryFactProvider,
    user_id: str,
    department: str,
    job_title: str,
    roles: list = (),
) -> None:
    provider.add_identity(
        IdentityFacts(
            id=user_id,
            organization_id="org-1",
            department=department,
            job_title=job_title,
            last_login_at=NOW,
        ),
        roles=roles,
    )


def seed_finance_peers(provider: InMemoryFactProvider, holders: int = 3, total: int = 4) -> None:
    """Finance analysts, ``holders`` of whom hold AP-Read."""
    for i in range(total):
        roles = [role("r-ap-read", "AP-Read")] if i < holders else [role("r-gl", "GL-View")]
        add_person(provider, f"peer-{i}", "Finance", "Senior Analyst", roles)


def make_rec(
    resource_id: str,
    confidence: float,
    priority: RecommendationPriority = RecommendationPriority.MEDIUM,
    strategy: RecommendationStrategy = RecommendationStrategy.PEER_BASED,
    resource_type: RecommendedResourceType = RecommendedResourceType.ROLE,
    **kwargs,
) -> Recommendation:
    return Recommendation(
        strategy=strategy,
        resource_type=resource_type,
        resource_id=resource_id,
        resource_name=resource_id,
        confidence=confidence,
        reason="test",
        priority=priority,
        **kwargs,
    )


def of_strategy(
    recommendations: list[Recommendation], strategy: RecommendationStrategy
) -> list[Recommendation]:
    return [r for r in recommendations if r.strategy == strategy]


@pytest.fixture
def engine(provider: InMemoryFactProvider) -> RecommendationEngine:
    """Create a default recommendation engine."""
    return RecommendationEngine(provider)


# =============================================================================
# Recommendation type
# =============================================================================


class TestRecommendation:
    """Tests for the recommendation value type."""

    def test_confidence_clamped(self) -> None:
        """Test confidence is kept within [0, 1]."""
        assert make_rec("a", 1.7).confidence == 1.0
        assert make_rec("a", -0.2).confidence == 0.0

    @pytest.mark.parametrize(
        ("eligible", "confidence", "risk", "expected"),
        [
            (True, 0.95, RiskLevel.LOW, True),
            (True, 0.9, RiskLevel.MEDIUM, True),
            (True, 0.89, RiskLevel.LOW, False),
            (True, 0.99, RiskLevel.HIGH, False),
            (False, 1.0, RiskLevel.LOW, False),
        ],
    )
    def test_auto_approvable(
        self, eligible: bool, confidence: float, risk: RiskLevel, expected: bool
    ) -> None:
        """Test auto-approval needs eligibility, 0.9 confidence and Low/Medium risk."""
        rec = make_rec(
            "a", confidence, auto_approve_eligible=eligible, estimated_risk=risk
        )
        assert rec.auto_approvable is expected
        assert rec.to_dict()["auto_approvable"] is expected


# =============================================================================
# Deduplication and ranking
# =============================================================================


class TestDeduplicateAndRank:
    """Tests for merging and ordering."""

    def test_keeps_highest_confidence(self) -> None:
        """Test duplicates merge to the most confident recommendation."""
        low = make_rec("r-1", 0.6, strategy=RecommendationStrategy.DEPARTMENT_BASED)
        high = make_rec("r-1", 0.8, strategy=RecommendationStrategy.PEER_BASED)

        result = deduplicate([low, high])

        assert result == [high]

    def test_tie_keeps_first_seen(self) -> None:
        """Test equal confidence keeps the first recommendation."""
        first = make_rec("r-1", 0.7, strategy=RecommendationStrategy.PEER_BASED)
        second = make_rec("r-1", 0.7, strategy=RecommendationStrategy.DEPARTMENT_BASED)

        assert deduplicate([first, second]) == [first]

    def test_resource_type_is_part_of_key(self) -> None:
        """Test the same id under different resource types stays distinct."""
        as_role = make_rec("x", 0.7)
        as_permission = make_rec("x", 0.7, resource_type=RecommendedResourceType.PERMISSION)

        assert len(deduplicate([as_role, as_permission])) == 2

    def test_dedup_is_order_insensitive_for_distinct_confidences(self) -> None:
        """Test the surviving recommendation does not depend on input order."""
        recs = [make_rec("r-1", c) for c in (0.5, 0.9, 0.7)]

        assert deduplicate(recs)[0].confidence == 0.9
        assert deduplicate(reversed(recs))[0].confidence == 0.9

    def test_rank_by_priority_then_confidence(self) -> None:
        """Test critical first, then by confidence within a priority."""
        recs = [
            make_rec("a", 0.99, RecommendationPriority.LOW),
            make_rec("b", 0.7, RecommendationPriority.HIGH),
            make_rec("c", 0.9, RecommendationPriority.HIGH),
            make_rec("d", 0.5, RecommendationPriority.CRITICAL),
        ]

        assert [r.resource_id for r in rank(recs)] == ["d", "c", "b", "a"]


# =============================================================================
# Strategies
# =============================================================================


@pytest.mark.asyncio
class TestPeerStrategy:
    """Tests for peer-based recommendations."""

    async def test_three_of_four_analysts(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test a role held by 3 of 4 similar peers is recommended with high priority."""
        seed_finance_peers(provider)
        add_person(provider, "u-s", "Finance", "Analyst")

        recommendations = await engine.get_recommendations("u-s", now=NOW)

        [rec] = of_strategy(recommendations, RecommendationStrategy.PEER_BASED)
        assert rec.resource_id == "r-ap-read"
        assert rec.confidence == 0.75
        assert rec.priority == RecommendationPriority.HIGH
        assert rec.reason == "75% of similar users (3/4) in Finance have this role"
        assert rec.metadata["peer_count"] == 4

    async def test_held_role_not_recommended(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test roles the subject already holds are skipped."""
        seed_finance_peers(provider)
        add_person(provider, "u-s", "Finance", "Analyst", [role("r-ap-read", "AP-Read")])

        recommendations = await engine.get_recommendations("u-s", now=NOW)

        assert of_strategy(recommendations, RecommendationStrategy.PEER_BASED) == []

    async def test_too_few_peers(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test fewer than three peers yields nothing."""
        seed_finance_peers(provider, holders=2, total=2)
        add_person(provider, "u-s", "Finance", "Analyst")

        recommendations = await engine.get_recommendations("u-s", now=NOW)

        assert of_strategy(recommendations, RecommendationStrategy.PEER_BASED) == []

    async def test_confidence_capped(self, provider: InMemoryFactProvider) -> None:
        """Test a role every peer holds is capped at 0.95."""
        seed_finance_peers(provider, holders=4, total=4)
        subject = RecommendationSubject(user_id="u-s", department="Finance", job_title="Analyst")
        engine = RecommendationEngine(provider)

        [rec] = await engine.peer.recommend(subject, NOW)

        assert rec.confidence == 0.95


@pytest.mark.asyncio
class TestDepartmentStrategy:
    """Tests for department-based recommendations."""

    async def test_role_held_by_most_of_department(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test 4 of 5 members is enough and 3 of 5 is not."""
        for i in range(5):
            roles = [role("r-vpn", "VPN")] if i < 4 else []
            if i < 3:
                roles.append(role("r-ci", "Jenkins"))
            add_person(provider, f"eng-{i}", "Engineering", f"Role {i}", roles)
        subject = RecommendationSubject(user_id="u-s", department="Engineering")

        recs = await engine.department.recommend(subject, NOW)

        assert [(r.resource_id, r.confidence) for r in recs] == [("r-vpn", 0.8)]
        assert recs[0].priority == RecommendationPriority.MEDIUM

    async def test_small_department(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test departments under five members yield nothing."""
        for i in range(4):
            add_person(provider, f"eng-{i}", "Engineering", "Dev", [role("r-vpn", "VPN")])
        subject = RecommendationSubject(user_id="u-s", department="Engineering")

        assert await engine.department.recommend(subject, NOW) == []


@pytest.mark.asyncio
class TestRoleStrategy:
    """Tests for role-based recommendations."""

    async def test_inactive_role_permissions(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test permissions of a held role that are not yet active."""
        provider.set_role_permissions(
            "r-ap",
            [
                PermissionRef(permission_id="p-view", name="View Invoices"),
                PermissionRef(permission_id="p-del", name="Delete Invoices"),
            ],
        )
        provider.set_active_permissions("u-s", ["p-view"])
        subject = RecommendationSubject(user_id="u-s", roles=[role("r-ap", "Accounts Payable")])

        [rec] = await engine.role.recommend(subject, NOW)

        assert rec.resource_type == RecommendedResourceType.PERMISSION
        assert rec.resource_id == "p-del"
        assert rec.confidence == 0.95
        assert rec.priority == RecommendationPriority.HIGH
        assert rec.estimated_risk == RiskLevel.HIGH
        assert rec.auto_approvable is False
        assert rec.reason == (
            'This permission is part of your "Accounts Payable" role but not currently active'
        )


@pytest.mark.asyncio
class TestRolePatternStrategy:
    """Tests for job-title role patterns."""

    def seed_catalog(self, provider: InMemoryFactProvider) -> None:
        provider.add_catalog_roles(
            "org-1",
            *(
                RoleRef(role_id=f"cat-{i}", role_name=name, organization_id="org-1")
                for i, name in enumerate(
                    [
                        "Team Manager",
                        "Report Viewer",
                        "Approval Authority",
                        "Financial Systems Read",
                        "Accounting Software",
                        "CRM Access",
                    ]
                )
            ),
        )

    async def test_every_matching_pattern_contributes(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test a Finance Manager receives manager and finance roles not yet held."""
        self.seed_catalog(provider)
        subject = RecommendationSubject(
            user_id="u-s",
            job_title="Finance Manager",
            organization_id="org-1",
            roles=[role("cat-1", "Report Viewer")],
        )

        recs = await engine.role_pattern.recommend(subject, NOW)

        assert [r.resource_name for r in recs] == [
            "Team Manager",
            "Approval Authority",
            "Financial Systems Read",
            "Accounting Software",
        ]
        assert all(r.confidence == 0.85 for r in recs)
        assert all(r.priority == RecommendationPriority.HIGH for r in recs)
        assert all(r.strategy == RecommendationStrategy.ROLE_BASED for r in recs)
        assert recs[0].estimated_risk == RiskLevel.HIGH
        assert recs[0].metadata == {"job_title": "Finance Manager", "pattern": "manager"}
        assert recs[2].reason == "Standard access for Finance team members"

    async def test_roles_missing_from_catalog_skipped(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test only roles defined in the organization are recommended."""
        self.seed_catalog(provider)
        subject = RecommendationSubject(
            user_id="u-s", job_title="Sales Representative", organization_id="org-1"
        )

        recs = await engine.role_pattern.recommend(subject, NOW)

        assert [r.resource_id for r in recs] == ["cat-5"]

    async def test_unmatched_title(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        self.seed_catalog(provider)
        subject = RecommendationSubject(
            user_id="u-s", job_title="Receptionist", organization_id="org-1"
        )

        assert await engine.role_pattern.recommend(subject, NOW) == []

    async def test_no_organization(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        self.seed_catalog(provider)
        subject = RecommendationSubject(user_id=None, job_title="Finance Manager")

        assert await engine.role_pattern.recommend(subject, NOW) == []


@pytest.mark.asyncio
class TestBirthrightStrategy:
    """Tests for birthright recommendations."""

    async def test_engineering_manager(self, engine: RecommendationEngine) -> None:
        """Test company, manager and department birthrights combine."""
        subject = RecommendationSubject(
            user_id="u-s", department="Engineering", job_title="Engineering Manager"
        )

        recs = await engine.birthright.recommend(subject, NOW)

        names = {r.resource_name for r in recs}
        assert {"Slack", "Manager Dashboard", "GitHub Access"} <= names
        assert len(recs) == 9
        assert all(r.confidence == 1.0 for r in recs)
        assert all(r.estimated_risk == RiskLevel.LOW for r in recs)
        assert all(r.auto_approvable for r in recs)

    async def test_held_birthright_skipped(self, engine: RecommendationEngine) -> None:
        """Test resources already held by name are skipped."""
        subject = RecommendationSubject(
            user_id="u-s", department="Sales", roles=[role("slack-seat", "Slack")]
        )

        recs = await engine.birthright.recommend(subject, NOW)

        names = [r.resource_name for r in recs]
        assert "Slack" not in names
        assert "Salesforce" in names
        assert "birthright-linkedin-sales-navigator" in {r.resource_id for r in recs}


@pytest.mark.asyncio
class TestComplianceStrategy:
    """Tests for compliance recommendations."""

    async def test_sox_violation_and_missing_review(
        self, engine: RecommendationEngine
    ) -> None:
        """Test AP plus AR in Finance and no review on record."""
        subject = RecommendationSubject(
            user_id="u-s",
            department="Finance",
            roles=[
                role("r-ap", "Accounts Payable Clerk"),
                role("r-ar", "Accounts Receivable Clerk"),
            ],
        )

        recs = await engine.compliance.recommend(subject, NOW)

        assert [r.description for r in recs] == [
            "Remove either AP or AR access to maintain SOX compliance",
            "Access review required (no review on record)",
        ]
        assert all(r.priority == RecommendationPriority.CRITICAL for r in recs)
        assert all(r.auto_approvable is False for r in recs)

    async def test_overdue_review(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test a review older than 90 days is overdue."""
        provider.set_last_access_review("u-s", NOW - timedelta(days=100))
        subject = RecommendationSubject(user_id="u-s", department="Sales")

        [rec] = await engine.compliance.recommend(subject, NOW)

        assert rec.description == "Access review overdue (last review: 100 days ago)"

    async def test_recent_review(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test a recent review and no conflicting roles yield nothing."""
        provider.set_last_access_review("u-s", NOW - timedelta(days=10))
        subject = RecommendationSubject(
            user_id="u-s", department="Finance", roles=[role("r-ap", "Accounts Payable Clerk")]
        )

        assert await engine.compliance.recommend(subject, NOW) == []

    async def test_naive_review_time_treated_as_utc(self) -> None:
        """Test a review time without an offset still yields both findings."""
        provider = NaiveReviewProvider()
        add_person(
            provider,
            "u-s",
            "Finance",
            "Clerk",
            [role("r-ap", "Accounts Payable Clerk"), role("r-ar", "Accounts Receivable Clerk")],
        )

        recs = await RecommendationEngine(provider).get_recommendations("u-s", now=NOW)

        assert [r.description for r in of_strategy(recs, RecommendationStrategy.COMPLIANCE)] == [
            "Remove either AP or AR access to maintain SOX compliance",
            "Access review overdue (last review: 137 days ago)",
        ]


# =============================================================================
# Engine
# =============================================================================


@pytest.mark.asyncio
class TestGetRecommendations:
    """Tests for combined user recommendations."""

    async def test_ranked_and_unique(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test results are deduplicated and ordered by priority then confidence."""
        seed_finance_peers(provider)
        add_person(provider, "u-s", "Finance", "Analyst")

        recs = await engine.get_recommendations("u-s", now=NOW)

        keys = [r.dedup_key for r in recs]
        assert len(keys) == len(set(keys))
        ordering = [(-r.priority.rank, -r.confidence) for r in recs]
        assert ordering == sorted(ordering)
        assert recs[0].strategy == RecommendationStrategy.COMPLIANCE

    async def test_unknown_user(self, engine: RecommendationEngine) -> None:
        """Test unavailable facts yield no recommendations."""
        assert await engine.get_recommendations("ghost", now=NOW) == []

    async def test_malformed_user_id(self, engine: RecommendationEngine) -> None:
        """Test malformed identifiers are rejected."""
        with pytest.raises(IdentifierValidationError):
            await engine.get_recommendations("../etc", now=NOW)

    async def test_failing_strategy_isolated(self) -> None:
        """Test one failing strategy leaves the others intact."""
        provider = BrokenReviewProvider()
        add_person(provider, "u-s", "Sales", "Rep")
        before = REGISTRY.get_sample_value(
            "vantage_recommendation_strategy_failures_total", {"strategy": "compliance"}
        ) or 0.0

        recs = await RecommendationEngine(provider).get_recommendations("u-s", now=NOW)

        assert of_strategy(recs, RecommendationStrategy.COMPLIANCE) == []
        assert of_strategy(recs, RecommendationStrategy.BIRTHRIGHT)
        after = REGISTRY.get_sample_value(
            "vantage_recommendation_strategy_failures_total", {"strategy": "compliance"}
        )
        assert after == before + 1

    async def test_slow_strategy_abandoned(self) -> None:
        """Test a strategy exceeding its timeout contributes nothing."""
        provider = SlowPeerProvider()
        add_person(provider, "u-s", "Sales", "Rep")
        engine = create_recommendation_engine(
            provider, RecommenderConfig(strategy_timeout_seconds=0.05)
        )

        recs = await engine.get_recommendations("u-s", now=NOW)

        assert of_strategy(recs, RecommendationStrategy.PEER_BASED) == []
        assert of_strategy(recs, RecommendationStrategy.BIRTHRIGHT)


@pytest.mark.asyncio
class TestApprovalRecommendations:
    """Tests for historical approval guidance."""

    def seed(self, provider: InMemoryFactProvider, approved: int, rejected: int) -> None:
        provider.add_request(
            RequestFacts(
                id="req-p",
                resource_type="financial_system",
                resource_name="NetSuite",
                requester_id="u-x",
                submitted_at=NOW,
                business_justification_length=80,
            )
        )
        for i in range(approved + rejected):
            provider.add_request(
                RequestFacts(
                    id=f"req-h{i}",
                    resource_type="financial_system",
                    resource_name="NetSuite",
                    requester_id=f"u-{i}",
                    submitted_at=NOW - timedelta(days=i + 1),
                    status=RequestStatus.APPROVED if i < approved else RequestStatus.REJECTED,
                )
            )

    async def test_mostly_approved(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test an 80% approval rate suggests APPROVE."""
        self.seed(provider, approved=8, rejected=2)

        [rec] = await engine.get_approval_recommendations("req-p")

        assert rec.metadata["suggested_action"] == "APPROVE"
        assert rec.confidence == pytest.approx(0.6)
        assert rec.priority == RecommendationPriority.HIGH
        assert rec.estimated_risk == RiskLevel.MEDIUM
        assert rec.auto_approvable is False

    async def test_always_approved_is_auto_approvable(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test a unanimous history on a Medium-risk request."""
        self.seed(provider, approved=10, rejected=0)

        [rec] = await engine.get_approval_recommendations("req-p")

        assert rec.confidence == 1.0
        assert rec.auto_approvable is True

    async def test_mixed_history_needs_review(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test a 50% approval rate suggests REVIEW with zero confidence."""
        self.seed(provider, approved=3, rejected=3)

        [rec] = await engine.get_approval_recommendations("req-p")

        assert rec.metadata["suggested_action"] == "REVIEW"
        assert rec.confidence == 0.0
        assert rec.priority == RecommendationPriority.MEDIUM

    async def test_mostly_rejected(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test a 20% approval rate suggests REJECT."""
        self.seed(provider, approved=1, rejected=4)

        [rec] = await engine.get_approval_recommendations("req-p")

        assert rec.metadata["suggested_action"] == "REJECT"
        assert rec.confidence == pytest.approx(0.6)

    async def test_no_history(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test no decided requests yields no guidance."""
        self.seed(provider, approved=0, rejected=0)

        assert await engine.get_approval_recommendations("req-p") == []

    async def test_unknown_request(self, engine: RecommendationEngine) -> None:
        """Test an unavailable request yields no guidance."""
        assert await engine.get_approval_recommendations("req-missing") == []


@pytest.mark.asyncio
class TestOnboardingRecommendations:
    """Tests for new-hire packages."""

    async def test_package_filters_risky_and_unsure(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test only confident Low/Medium peer and birthright access is kept."""
        for i in range(4):
            roles = [role("r-ap-read", "AP-Read"), role("r-fin-admin", "Finance Admin")]
            if i < 3:
                roles.append(role("r-gl", "GL-View"))
            add_person(provider, f"peer-{i}", "Finance", "Analyst", roles)

        package = await engine.get_onboarding_recommendations("Finance", "Analyst", now=NOW)

        ids = {r.resource_id for r in package}
        assert "r-ap-read" in ids
        assert "r-fin-admin" not in ids
        assert "r-gl" not in ids
        assert "birthright-netsuite-read-access" in ids
        assert all(r.confidence >= 0.8 for r in package)
        assert not of_strategy(package, RecommendationStrategy.COMPLIANCE)


@pytest.mark.asyncio
class TestAutoApprovalCandidates:
    """Tests for organization-wide auto-approval analytics."""

    def seed(
        self,
        provider: InMemoryFactProvider,
        resource: str,
        approved: int,
        rejected: int,
        age_days: int = 1,
    ) -> None:
        for i in range(approved + rejected):
            submitted = NOW - timedelta(days=age_days, hours=i)
            provider.add_request(
                RequestFacts(
                    id=f"{resource}-{i}",
                    resource_type="application",
                    resource_id=resource,
                    resource_name=resource.title(),
                    requester_id=f"u-{i}",
                    organization_id="org-1",
                    submitted_at=submitted,
                    status=RequestStatus.APPROVED if i < approved else RequestStatus.REJECTED,
                    decided_at=submitted + timedelta(hours=2 if i % 2 else 4),
                )
            )

    async def test_high_rate_over_enough_requests(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test 19 of 20 approvals recommends auto-approval."""
        self.seed(provider, "wiki", approved=19, rejected=1)

        [candidate] = await engine.get_auto_approval_candidates("org-1", now=NOW)

        assert candidate.resource_id == "wiki"
        assert candidate.resource_name == "Wiki"
        assert candidate.total_requests == 20
        assert candidate.approved_requests == 19
        assert candidate.approval_rate == 95
        assert candidate.recommend_auto_approve is True
        # ten approvals waited 4 hours, nine waited 2
        assert candidate.average_approval_hours == pytest.approx(3.1)
        assert candidate.reason == (
            "95% approval rate over 20 requests suggests this is low-risk "
            "and can be auto-approved"
        )

    async def test_small_sample_reported_not_recommended(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test a perfect record over 12 requests still needs review."""
        self.seed(provider, "vpn", approved=12, rejected=0)

        [candidate] = await engine.get_auto_approval_candidates("org-1", now=NOW)

        assert candidate.approval_rate == 100
        assert candidate.recommend_auto_approve is False
        assert candidate.reason == "100% approval rate - needs human review"

    async def test_low_rate_not_recommended(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        self.seed(provider, "erp", approved=15, rejected=10)

        [candidate] = await engine.get_auto_approval_candidates("org-1", now=NOW)

        assert candidate.approval_rate == 60
        assert candidate.recommend_auto_approve is False

    async def test_sparse_and_stale_history_omitted(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        """Test resources under 10 decisions in the 90-day window are left out."""
        self.seed(provider, "wiki", approved=9, rejected=0)
        self.seed(provider, "vpn", approved=20, rejected=0, age_days=91)

        assert await engine.get_auto_approval_candidates("org-1", now=NOW) == []

    async def test_ordered_by_rate_then_volume(
        self, engine: RecommendationEngine, provider: InMemoryFactProvider
    ) -> None:
        self.seed(provider, "erp", approved=15, rejected=10)
        self.seed(provider, "vpn", approved=12, rejected=0)
        self.seed(provider, "wiki", approved=20, rejected=0)

        candidates = await engine.get_auto_approval_candidates("org-1", now=NOW)

        assert [c.resource_id for c in candidates] == ["wiki", "vpn", "erp"]

    async def test_history_unavailable(self) -> None:
        """Test an unreadable decision history yields no candidates."""
        engine = RecommendationEngine(BrokenDecisionProvider())

        assert await engine.get_auto_approval_candidates("org-1", now=NOW) == []

    async def test_malformed_organization_id(self, engine: RecommendationEngine) -> None:
        with pytest.raises(IdentifierValidationError):
            await engine.get_auto_approval_candidates("org 1", now=NOW)
