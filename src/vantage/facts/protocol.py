"""Fact provider protocol for the Vantage decision core.

This module defines the read and write interface the engines use to reach
the external identity store. Implementations return immutable snapshots and
contain no business logic. A failed or timed-out query raises
DataUnavailableError; a failed write raises PersistenceError.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .types import (
    ActivityAction,
    ActivityEvent,
    IdentityFacts,
    PeerProfile,
    PermissionRef,
    RequestFacts,
    RoleGrant,
    RoleRef,
)

if TYPE_CHECKING:
    from vantage.risk.anomaly_detector import Anomaly


@runtime_checkable
class FactProvider(Protocol):
    """Interface all fact providers must implement.

    Example implementation:
        class WarehouseFactProvider:
            async def get_identity_facts(self, user_id: str) -> IdentityFacts:
                row = await self._warehouse.fetch_user(user_id)
                if row is None:
                    raise DataUnavailableError(
                        "User not found", query="get_identity_facts", subject_id=user_id
                    )
                return IdentityFacts(id=row["id"], ...)

            ...
    """

    async def get_identity_facts(self, user_id: str) -> IdentityFacts:
        """Get the identity snapshot for a user.

        Raises:
            DataUnavailableError: If the user is unknown or the store fails.
        """
        ...

    async def get_request_facts(self, request_id: str) -> RequestFacts:
        """Get an access request.

        Raises:
            DataUnavailableError: If the request is unknown or the store fails.
        """
        ...

    async def get_activity_window(
        self,
        user_id: str,
        actions: Sequence[ActivityAction],
        since: datetime,
        limit: int | None = None,
    ) -> list[ActivityEvent]:
        """Get a user's events of the given kinds at or after ``since``.

        Events are returned newest first. ``limit`` caps the number returned.
        """
        ...

    async def get_peers(
        self,
        department: str,
        job_title_core: str | None,
        exclude_user_id: str,
        limit: int,
    ) -> list[PeerProfile]:
        """Get users sharing a department, optionally a job-title core too.

        ``job_title_core=None`` selects the whole department. Matching on the
        core is case-insensitive substring matching against job titles.
        """
        ...

    async def get_user_roles(self, user_id: str) -> list[RoleGrant]:
        """Get the roles a user currently holds."""
        ...

    async def get_role_permissions(self, role_id: str) -> list[PermissionRef]:
        """Get the permissions attached to a role."""
        ...

    async def get_active_permission_ids(self, user_id: str) -> set[str]:
        """Get identifiers of permissions already active for a user."""
        ...

    async def find_roles_by_name(
        self, organization_id: str, names: Sequence[str]
    ) -> list[RoleRef]:
        """Get the organization's catalog roles whose name is one of ``names``.

        Names match exactly; unknown names are skipped.
        """
        ...

    async def get_last_access_review(self, user_id: str) -> datetime | None:
        """Get when the user's access was last reviewed, if ever."""
        ...

    async def get_request_window(self, user_id: str, since: datetime) -> list[RequestFacts]:
        """Get requests made by or for a user at or after ``since``, newest first."""
        ...

    async def get_decided_requests(self, resource_type: str, limit: int) -> list[RequestFacts]:
        """Get up to ``limit`` approved or rejected requests of a resource type."""
        ...

    async def get_organization_decisions(
        self, organization_id: str, since: datetime
    ) -> list[RequestFacts]:
        """Get an organization's approved or rejected requests submitted since ``since``."""
        ...

    async def list_organization_users(self, organization_id: str) -> list[str]:
        """Get identifiers of all users in an organization."""
        ...

    async def insert_anomalies(self, user_id: str, anomalies: Sequence[Anomaly]) -> None:
        """Persist newly detected anomalies as unreviewed records.

        Raises:
            PersistenceError: If the write fails.
        """
        ...

    async def mark_anomaly_reviewed(self, anomaly_id: str, is_false_positive: bool) -> None:
        """Record a reviewer decision on an anomaly.

        Raises:
            RecordNotFoundError: If the anomaly does not exist.
            PersistenceError: If the write fails.
        """
        ...

    async def list_unreviewed_anomalies(
        self, organization_id: str, limit: int
    ) -> list[Anomaly]:
        """Get unreviewed anomalies for an organization, newest first."""
        ...
