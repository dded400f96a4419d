"""Fact types for the Vantage fact provider boundary.

Facts are point-in-time snapshots fetched from the external identity store.
They are immutable once fetched and carry no business logic:
- Identity facts (per-user access and hygiene counters)
- Access request facts
- Activity events (append-only audit trail)
- Role, permission and peer profiles used by the recommendation strategies
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ActivityAction(str, Enum):
    """Actions recorded in the activity log."""

    LOGIN = "login"
    LOGIN_FAILED = "login_failed"
    ROLE_ASSIGNED = "role_assigned"
    ROLE_REMOVED = "role_removed"
    PERMISSION_GRANT = "permission_grant"
    PERMISSION_REVOKE = "permission_revoke"


# Actions that change what a user can reach
ACCESS_CHANGE_ACTIONS: frozenset[ActivityAction] = frozenset(
    {
        ActivityAction.ROLE_ASSIGNED,
        ActivityAction.ROLE_REMOVED,
        ActivityAction.PERMISSION_GRANT,
        ActivityAction.PERMISSION_REVOKE,
    }
)


class ResourceType(str, Enum):
    """Closed set of resource types an access request can target."""

    ADMIN_ROLE = "admin_role"
    PRIVILEGED_ACCOUNT = "privileged_account"
    FINANCIAL_SYSTEM = "financial_system"
    PRODUCTION_SYSTEM = "production_system"
    DATABASE_ADMIN = "database_admin"
    SECURITY_SYSTEM = "security_system"
    HR_SYSTEM = "hr_system"
    STANDARD_APPLICATION = "standard_application"
    READ_ONLY = "read_only"


class RequestStatus(str, Enum):
    """Decision status of an access request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive timestamp; aware timestamps are returned unchanged."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


class _Fact(BaseModel):
    """Base for immutable fact snapshots.

    Naive timestamps are taken to be UTC.
    """

    model_config = ConfigDict(frozen=True)

    @field_validator("*", mode="after")
    @classmethod
    def _assume_utc(cls, value: Any) -> Any:
        return as_utc(value) if isinstance(value, datetime) else value


# =============================================================================
# Identity
# =============================================================================


class IdentityFacts(_Fact):
    """Access and hygiene counters for one user."""

    id: str
    organization_id: str | None = None
    department: str | None = None
    job_title: str | None = None
    admin_role_count: int = Field(default=0, ge=0)
    has_privileged_access: bool = False
    sod_violation_count: int = Field(default=0, ge=0)
    last_login_at: datetime | None = None
    failed_login_attempts: int = Field(default=0, ge=0)
    total_role_count: int = Field(default=0, ge=0)


class RoleGrant(_Fact):
    """A role currently held by a user."""

    role_id: str
    role_name: str
    is_admin: bool = False
    expires_at: datetime | None = None


class RoleRef(_Fact):
    """A role defined in an organization's role catalog."""

    role_id: str
    role_name: str
    organization_id: str | None = None


class PeerProfile(_Fact):
    """Identity facts of a peer together with the roles they hold."""

    facts: IdentityFacts
    roles: list[RoleGrant] = Field(default_factory=list)

    @property
    def role_ids(self) -> set[str]:
        """Identifiers of the roles held by this peer."""
        return {role.role_id for role in self.roles}


class PermissionRef(_Fact):
    """A permission attached to a role."""

    permission_id: str
    name: str
    description: str | None = None


# =============================================================================
# Requests
# =============================================================================


class RequestFacts(_Fact):
    """A pending or decided access request."""

    id: str
    resource_type: str
    resource_name: str
    resource_id: str | None = None
    requester_id: str
    for_user_id: str | None = None
    organization_id: str | None = None
    submitted_at: datetime
    priority: str = "Medium"
    sod_conflict_count: int = Field(default=0, ge=0)
    business_justification_length: int = Field(default=0, ge=0)
    status: RequestStatus = RequestStatus.PENDING
    decided_at: datetime | None = None

    @property
    def subject_user_id(self) -> str:
        """The user who would receive the access."""
        return self.for_user_id or self.requester_id

    @property
    def resource_key(self) -> str:
        """Key grouping requests for the same resource; falls back to its name."""
        return self.resource_id or self.resource_name


# =============================================================================
# Activity
# =============================================================================


class Location(_Fact):
    """Geolocation attached to a login event."""

    city: str | None = None
    country: str | None = None
    lat: float | None = None
    lon: float | None = None

    @property
    def has_coordinates(self) -> bool:
        """Whether both coordinates are known (zero is a valid coordinate)."""
        return self.lat is not None and self.lon is not None

    @property
    def label(self) -> str:
        """Human-readable "City, Country" label."""
        parts = [p for p in (self.city, self.country) if p]
        return ", ".join(parts) if parts else "Unknown"


class ActivityMetadata(_Fact):
    """Metadata captured with an activity event."""

    location: Location | None = None
    ip_address: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class ActivityEvent(_Fact):
    """One entry of the append-only activity log."""

    user_id: str
    action: ActivityAction
    timestamp: datetime
    metadata: ActivityMetadata = Field(default_factory=ActivityMetadata)

    @property
    def location(self) -> Location | None:
        """Shortcut to the event location."""
        return self.metadata.location

    @property
    def country(self) -> str | None:
        """Shortcut to the event country."""
        return self.metadata.location.country if self.metadata.location else None
