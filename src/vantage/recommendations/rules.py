"""Lookup tables and heuristics shared by the recommendation strategies."""

import math
import re
from collections.abc import Callable
from dataclasses import dataclass

from vantage.recommendations.types import RecommendedResourceType
from vantage.risk.risk_scorer import RiskLevel

# Leveling words removed before comparing job titles
_LEVEL_WORDS = re.compile(r"\b(senior|junior|lead|principal|staff|associate)\b")
_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


def job_title_core(job_title: str | None) -> str:
    """Core job function of a title, without seniority words.

    Example:
        >>> job_title_core("Senior Financial Analyst")
        'financial analyst'
    """
    if not job_title:
        return ""
    return " ".join(_LEVEL_WORDS.sub("", job_title.lower()).split())


def slugify(name: str) -> str:
    return _SLUG_SEPARATORS.sub("-", name.lower()).strip("-")


def percent(count: int, total: int) -> int:
    """Whole percentage, rounded half up."""
    return math.floor(count * 100 / total + 0.5) if total else 0


def estimate_role_risk(role_name: str) -> RiskLevel:
    """Estimate the risk of a role from its name."""
    name = role_name.lower()
    if any(word in name for word in ("admin", "superuser", "root")):
        return RiskLevel.CRITICAL
    if any(word in name for word in ("manager", "supervisor", "lead")):
        return RiskLevel.HIGH
    if any(word in name for word in ("developer", "analyst")):
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def estimate_permission_risk(permission_name: str) -> RiskLevel:
    """Estimate the risk of a permission from its name."""
    name = permission_name.lower()
    if any(word in name for word in ("delete", "admin", "security")):
        return RiskLevel.HIGH
    if any(word in name for word in ("edit", "modify", "update")):
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


# =============================================================================
# Birthright access
# =============================================================================


@dataclass(frozen=True)
class BirthrightRule:
    """Standard access granted to everyone matching a predicate.

    Attributes:
        name: Rule identifier.
        applies: Predicate over (department, job_title).
        resources: Resource names granted by the rule.
        reason: Justification shown with each recommendation.
        resource_type: Kind of resource granted.
    """

    name: str
    applies: Callable[[str | None, str | None], bool]
    resources: tuple[str, ...]
    reason: str
    resource_type: RecommendedResourceType = RecommendedResourceType.APPLICATION


def _in_department(department: str) -> Callable[[str | None, str | None], bool]:
    def _applies(dept: str | None, _title: str | None) -> bool:
        return (dept or "").strip().lower() == department

    return _applies


BIRTHRIGHT_RULES: tuple[BirthrightRule, ...] = (
    BirthrightRule(
        name="all_employees",
        applies=lambda _dept, _title: True,
        resources=("Office 365", "Slack", "Google Workspace", "Company Directory"),
        reason="Standard access for all employees",
    ),
    BirthrightRule(
        name="managers",
        applies=lambda _dept, title: "manager" in (title or "").lower(),
        resources=("Manager Dashboard", "Team Reports"),
        reason="Standard access for all managers",
    ),
    BirthrightRule(
        name="engineering",
        applies=_in_department("engineering"),
        resources=("GitHub Access", "Jira Access", "Confluence Access"),
        reason="Standard access for Engineering department",
    ),
    BirthrightRule(
        name="finance",
        applies=_in_department("finance"),
        resources=("NetSuite Read Access", "Expensify"),
        reason="Standard access for Finance department",
    ),
    BirthrightRule(
        name="sales",
        applies=_in_department("sales"),
        resources=("Salesforce", "LinkedIn Sales Navigator"),
        reason="Standard access for Sales department",
    ),
)


def birthright_resource_id(resource_name: str) -> str:
    return f"birthright-{slugify(resource_name)}"


# =============================================================================
# Compliance policies
# =============================================================================

SOX_SOD_POLICY = "SOX Compliance - Segregation of Duties"
ACCESS_REVIEW_POLICY = "Access Review Compliance"

# Role name fragments that together break segregation of duties in Finance
ACCOUNTS_PAYABLE = "accounts payable"
ACCOUNTS_RECEIVABLE = "accounts receivable"


def compliance_resource_id(policy_name: str) -> str:
    return f"compliance-{slugify(policy_name)}"


# =============================================================================
# Job-title role patterns
# =============================================================================


@dataclass(frozen=True)
class RolePattern:
    """Catalog roles expected for job titles containing ``pattern``.

    Attributes:
        pattern: Lowercase fragment searched for in the job title.
        roles: Exact catalog role names suggested.
        reason: Justification shown with each recommendation.
    """

    pattern: str
    roles: tuple[str, ...]
    reason: str


ROLE_PATTERNS: tuple[RolePattern, ...] = (
    RolePattern(
        pattern="software engineer",
        roles=("Developer", "Code Repository Access", "CI/CD Access"),
        reason="Standard access for Software Engineers",
    ),
    RolePattern(
        pattern="manager",
        roles=("Team Manager", "Report Viewer", "Approval Authority"),
        reason="Standard managerial access",
    ),
    RolePattern(
        pattern="finance",
        roles=("Financial Systems Read", "Accounting Software"),
        reason="Standard access for Finance team members",
    ),
    RolePattern(
        pattern="hr",
        roles=("HR Systems", "Employee Data Access"),
        reason="Standard access for HR team members",
    ),
    RolePattern(
        pattern="data analyst",
        roles=("BI Tools", "Database Read Access", "Analytics Platform"),
        reason="Standard access for Data Analysts",
    ),
    RolePattern(
        pattern="sales",
        roles=("CRM Access", "Sales Tools"),
        reason="Standard access for Sales team members",
    ),
)


def matching_role_patterns(job_title: str | None) -> list[RolePattern]:
    """Patterns whose fragment occurs in the job title, case-insensitively.

    Example:
        >>> [p.pattern for p in matching_role_patterns("Finance Manager")]
        ['manager', 'finance']
    """
    title = (job_title or "").lower()
    if not title:
        return []
    return [p for p in ROLE_PATTERNS if p.pattern in title]
