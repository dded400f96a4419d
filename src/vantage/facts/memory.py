"""In-memory fact provider.

Dictionary-backed implementation of the FactProvider protocol. Used by the
test-suite and as the reference service's default wiring when no remote
fact service is configured.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from vantage.core.exceptions import DataUnavailableError, RecordNotFoundError
from vantage.core.logging import get_logger

from .types import (
    ActivityAction,
    ActivityEvent,
    IdentityFacts,
    PeerProfile,
    PermissionRef,
    RequestFacts,
    RequestStatus,
    RoleGrant,
    RoleRef,
    as_utc,
)

if TYPE_CHECKING:
    from vantage.risk.anomaly_detector import Anomaly

logger = get_logger(__name__)


class InMemoryFactProvider:
    """Fact provider backed by plain dictionaries.

    Example:
        ```python
        provider = InMemoryFactProvider()
        provider.add_identity(IdentityFacts(id="u-1", department="Finance"))
        provider.add_activity(ActivityEvent(user_id="u-1", action="login", ...))

        scorer = RiskScorer(provider)
        assessment = await scorer.assess_user("u-1")
        ```
    """

    def __init__(self) -> None:
        """Initialize empty stores."""
        self.clear()

    def clear(self) -> None:
        """Drop every stored record."""
        self._identities: dict[str, IdentityFacts] = {}
        self._requests: dict[str, RequestFacts] = {}
        self._activity: dict[str, list[ActivityEvent]] = {}
        self._roles: dict[str, list[RoleGrant]] = {}
        self._role_permissions: dict[str, list[PermissionRef]] = {}
        self._active_permissions: dict[str, set[str]] = {}
        self._access_reviews: dict[str, datetime] = {}
        self._catalog: dict[str, list[RoleRef]] = {}
        self._anomalies: dict[str, Anomaly] = {}

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    def add_identity(self, facts: IdentityFacts, roles: Iterable[RoleGrant] = ()) -> None:
        """Store identity facts and optionally the roles the user holds."""
        self._identities[facts.id] = facts
        if roles:
            self._roles[facts.id] = list(roles)

    def add_request(self, request: RequestFacts) -> None:
        """Store an access request."""
        self._requests[request.id] = request

    def add_activity(self, *events: ActivityEvent) -> None:
        """Append events to the activity log."""
        for event in events:
            self._activity.setdefault(event.user_id, []).append(event)

    def set_roles(self, user_id: str, roles: Iterable[RoleGrant]) -> None:
        """Replace the roles a user holds."""
        self._roles[user_id] = list(roles)

    def set_role_permissions(self, role_id: str, permissions: Iterable[PermissionRef]) -> None:
        """Attach permissions to a role."""
        self._role_permissions[role_id] = list(permissions)

    def set_active_permissions(self, user_id: str, permission_ids: Iterable[str]) -> None:
        """Set the permissions already active for a user."""
        self._active_permissions[user_id] = set(permission_ids)

    def add_catalog_roles(self, organization_id: str, *roles: RoleRef) -> None:
        """Define roles in an organization's role catalog."""
        self._catalog.setdefault(organization_id, []).extend(roles)

    def set_last_access_review(self, user_id: str, reviewed_at: datetime) -> None:
        """Record when a user's access was last reviewed; naive times are UTC."""
        self._access_reviews[user_id] = as_utc(reviewed_at)

    @property
    def anomalies(self) -> list[Anomaly]:
        """All stored anomalies, in insertion order."""
        return list(self._anomalies.values())

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_identity_facts(self, user_id: str) -> IdentityFacts:
        """Get the identity snapshot for a user."""
        facts = self._identities.get(user_id)
        if facts is None:
            raise DataUnavailableError(
                "User not found", query="get_identity_facts", subject_id=user_id
            )
        return facts

    async def get_request_facts(self, request_id: str) -> RequestFacts:
        """Get an access request."""
        request = self._requests.get(request_id)
        if request is None:
            raise DataUnavailableError(
                "Request not found", query="get_request_facts", subject_id=request_id
            )
        return request

    async def get_activity_window(
        self,
        user_id: str,
        actions: Sequence[ActivityAction],
        since: datetime,
        limit: int | None = None,
    ) -> list[ActivityEvent]:
        """Get a user's events of the given kinds at or after ``since``, newest first."""
        wanted = set(actions)
        events = [
            e
            for e in self._activity.get(user_id, [])
            if e.action in wanted and e.timestamp >= since
        ]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit] if limit is not None else events

    async def get_peers(
        self,
        department: str,
        job_title_core: str | None,
        exclude_user_id: str,
        limit: int,
    ) -> list[PeerProfile]:
        """Get users sharing a department and, if given, a job-title core."""
        core = job_title_core.lower() if job_title_core else None
        peers: list[PeerProfile] = []
        for facts in self._identities.values():
            if facts.id == exclude_user_id or facts.department != department:
                continue
            if core is not None and core not in (facts.job_title or "").lower():
                continue
            peers.append(PeerProfile(facts=facts, roles=self._roles.get(facts.id, [])))
            if len(peers) >= limit:
                break
        return peers

    async def get_user_roles(self, user_id: str) -> list[RoleGrant]:
        """Get the roles a user currently holds."""
        return list(self._roles.get(user_id, []))

    async def get_role_permissions(self, role_id: str) -> list[PermissionRef]:
        """Get the permissions attached to a role."""
        return list(self._role_permissions.get(role_id, []))

    async def get_active_permission_ids(self, user_id: str) -> set[str]:
        """Get identifiers of permissions already active for a user."""
        return set(self._active_permissions.get(user_id, set()))

    async def find_roles_by_name(
        self, organization_id: str, names: Sequence[str]
    ) -> list[RoleRef]:
        """Get catalog roles of an organization with one of the given names."""
        wanted = set(names)
        return [r for r in self._catalog.get(organization_id, []) if r.role_name in wanted]

    async def get_last_access_review(self, user_id: str) -> datetime | None:
        """Get when the user's access was last reviewed."""
        return self._access_reviews.get(user_id)

    async def get_request_window(self, user_id: str, since: datetime) -> list[RequestFacts]:
        """Get requests made by or for a user since a point in time, newest first."""
        requests = [
            r
            for r in self._requests.values()
            if user_id in (r.requester_id, r.for_user_id) and r.submitted_at >= since
        ]
        requests.sort(key=lambda r: r.submitted_at, reverse=True)
        return requests

    async def get_decided_requests(self, resource_type: str, limit: int) -> list[RequestFacts]:
        """Get approved or rejected requests of a resource type, newest first."""
        decided = [
            r
            for r in self._requests.values()
            if r.resource_type == resource_type
            and r.status in (RequestStatus.APPROVED, RequestStatus.REJECTED)
        ]
        decided.sort(key=lambda r: r.submitted_at, reverse=True)
        return decided[:limit]

    async def get_organization_decisions(
        self, organization_id: str, since: datetime
    ) -> list[RequestFacts]:
        """Get an organization's decided requests since a point in time, newest first."""
        decided = [
            r
            for r in self._requests.values()
            if r.organization_id == organization_id
            and r.status in (RequestStatus.APPROVED, RequestStatus.REJECTED)
            and r.submitted_at >= since
        ]
        decided.sort(key=lambda r: r.submitted_at, reverse=True)
        return decided

    async def list_organization_users(self, organization_id: str) -> list[str]:
        """Get identifiers of all users in an organization."""
        return [f.id for f in self._identities.values() if f.organization_id == organization_id]

    async def list_unreviewed_anomalies(
        self, organization_id: str, limit: int
    ) -> list[Anomaly]:
        """Get unreviewed anomalies for users of an organization, newest first."""
        members = set(await self.list_organization_users(organization_id))
        pending = [a for a in self._anomalies.values() if not a.reviewed and a.user_id in members]
        pending.sort(key=lambda a: a.detected_at, reverse=True)
        return pending[:limit]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def insert_anomalies(self, user_id: str, anomalies: Sequence[Anomaly]) -> None:
        """Store anomalies as new unreviewed records."""
        for anomaly in anomalies:
            self._anomalies[anomaly.id] = dataclasses.replace(
                anomaly, reviewed=False, false_positive=False
            )
        logger.debug("anomalies_stored", user_id=user_id, count=len(anomalies))

    async def mark_anomaly_reviewed(self, anomaly_id: str, is_false_positive: bool) -> None:
        """Record a reviewer decision on an anomaly."""
        anomaly = self._anomalies.get(anomaly_id)
        if anomaly is None:
            raise RecordNotFoundError("anomaly", anomaly_id)
        self._anomalies[anomaly_id] = dataclasses.replace(
            anomaly,
            reviewed=True,
            false_positive=is_false_positive,
            reviewed_at=datetime.now(UTC),
        )
