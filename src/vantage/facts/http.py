"""HTTP fact provider for a remote identity store.

Talks to a JSON fact service over httpx. Reads are retried with exponential
backoff through tenacity; writes are attempted once. Transport and HTTP
failures are translated into DataUnavailableError (reads) or
PersistenceError (writes) so the engines can degrade as documented.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from vantage.config.settings import Settings
from vantage.core.exceptions import DataUnavailableError, PersistenceError, RecordNotFoundError
from vantage.core.logging import get_logger, log_external_call

from .types import (
    ActivityAction,
    ActivityEvent,
    IdentityFacts,
    PeerProfile,
    PermissionRef,
    RequestFacts,
    RoleGrant,
    RoleRef,
    as_utc,
)

if TYPE_CHECKING:
    from vantage.risk.anomaly_detector import Anomaly

logger = get_logger(__name__)

SERVICE_NAME = "fact_service"


class _RetryableError(Exception):
    """Internal marker for failures worth another attempt."""


class HttpFactProvider:
    """Fact provider backed by a remote HTTP fact service.

    Example:
        ```python
        async with HttpFactProvider("https://facts.internal/api") as provider:
            engine = RecommendationEngine(provider)
            recommendations = await engine.get_recommendations("u-1")
        ```
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout: float = 30.0,
        max_attempts: int = 3,
        backoff_min: float = 2.0,
        backoff_max: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the provider.

        Args:
            base_url: Root URL of the fact service.
            api_key: Optional bearer token.
            timeout: Per-request timeout in seconds.
            max_attempts: Attempts per read before giving up.
            backoff_min: Minimum wait between read attempts in seconds.
            backoff_max: Maximum wait between read attempts in seconds.
            client: Pre-built client (tests inject one with a mock transport).
        """
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.AsyncClient(
            base_url=base_url, timeout=timeout, headers=headers
        )
        self._max_attempts = max_attempts
        self._backoff_min = backoff_min
        self._backoff_max = backoff_max

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpFactProvider:
        """Build a provider from application settings."""
        if not settings.fact_service_url:
            raise ValueError("fact_service_url is not configured")
        api_key = (
            settings.fact_service_api_key.get_secret_value()
            if settings.fact_service_api_key
            else None
        )
        return cls(
            settings.fact_service_url,
            api_key=api_key,
            timeout=settings.fact_service_timeout_seconds,
            max_attempts=settings.fact_service_max_retries,
        )

    async def __aenter__(self) -> HttpFactProvider:
        """Enter async context."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _get(
        self, path: str, *, query: str, subject_id: str | None, params: dict | None = None
    ) -> Any:
        """GET a JSON document, retrying transient failures.

        Raises:
            DataUnavailableError: On 4xx responses or once retries are exhausted.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=1, min=self._backoff_min, max=self._backoff_max),
            retry=retry_if_exception_type(_RetryableError),
        )
        start = time.perf_counter()
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._fetch(path, params)
        except RetryError as e:
            cause = e.last_attempt.exception()
            log_external_call(
                logger,
                SERVICE_NAME,
                query,
                (time.perf_counter() - start) * 1000,
                success=False,
                error=str(cause),
                attempts=self._max_attempts,
            )
            raise DataUnavailableError(
                f"Fact service unavailable: {cause}", query=query, subject_id=subject_id
            ) from e

        duration_ms = (time.perf_counter() - start) * 1000
        if response.status_code >= 400:
            log_external_call(
                logger, SERVICE_NAME, query, duration_ms, success=False,
                status_code=response.status_code,
            )
            raise DataUnavailableError(
                f"Fact service returned {response.status_code}",
                query=query,
                subject_id=subject_id,
            )

        log_external_call(logger, SERVICE_NAME, query, duration_ms, success=True)
        return response.json()

    async def _fetch(self, path: str, params: dict | None) -> httpx.Response:
        """Single GET attempt; raises _RetryableError for transient failures."""
        try:
            response = await self._client.get(path, params=params)
        except httpx.TransportError as e:
            raise _RetryableError(str(e)) from e
        if response.status_code >= 500 or response.status_code == 429:
            raise _RetryableError(f"HTTP {response.status_code}")
        return response

    async def _post(
        self,
        path: str,
        *,
        operation: str,
        payload: Any,
        record_count: int,
        allow_not_found: bool = False,
    ) -> int:
        """POST a JSON document once and return the status code.

        A 404 is returned to the caller only with ``allow_not_found``.

        Raises:
            PersistenceError: On transport failures and error responses.
        """
        start = time.perf_counter()
        try:
            response = await self._client.post(path, json=payload)
        except httpx.TransportError as e:
            raise PersistenceError(
                f"Fact service unreachable: {e}", operation=operation, record_count=record_count
            ) from e

        duration_ms = (time.perf_counter() - start) * 1000
        success = response.status_code < 400
        log_external_call(
            logger, SERVICE_NAME, operation, duration_ms, success=success,
            status_code=response.status_code,
        )
        if response.status_code == 404 and allow_not_found:
            return response.status_code
        if response.status_code >= 400:
            raise PersistenceError(
                f"Fact service returned {response.status_code}",
                operation=operation,
                record_count=record_count,
            )
        return response.status_code

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_identity_facts(self, user_id: str) -> IdentityFacts:
        """Get the identity snapshot for a user."""
        data = await self._get(
            f"/users/{user_id}/identity", query="get_identity_facts", subject_id=user_id
        )
        return IdentityFacts.model_validate(data)

    async def get_request_facts(self, request_id: str) -> RequestFacts:
        """Get an access request."""
        data = await self._get(
            f"/requests/{request_id}", query="get_request_facts", subject_id=request_id
        )
        return RequestFacts.model_validate(data)

    async def get_activity_window(
        self,
        user_id: str,
        actions: Sequence[ActivityAction],
        since: datetime,
        limit: int | None = None,
    ) -> list[ActivityEvent]:
        """Get a user's events of the given kinds at or after ``since``."""
        params: dict[str, Any] = {
            "actions": ",".join(a.value for a in actions),
            "since": since.isoformat(),
        }
        if limit is not None:
            params["limit"] = limit
        data = await self._get(
            f"/users/{user_id}/activity",
            query="get_activity_window",
            subject_id=user_id,
            params=params,
        )
        return [ActivityEvent.model_validate(item) for item in data]

    async def get_peers(
        self,
        department: str,
        job_title_core: str | None,
        exclude_user_id: str,
        limit: int,
    ) -> list[PeerProfile]:
        """Get users sharing a department and, if given, a job-title core."""
        params: dict[str, Any] = {
            "department": department,
            "exclude": exclude_user_id,
            "limit": limit,
        }
        if job_title_core:
            params["job_title_core"] = job_title_core
        data = await self._get(
            "/peers", query="get_peers", subject_id=exclude_user_id, params=params
        )
        return [PeerProfile.model_validate(item) for item in data]

    async def get_user_roles(self, user_id: str) -> list[RoleGrant]:
        """Get the roles a user currently holds."""
        data = await self._get(
            f"/users/{user_id}/roles", query="get_user_roles", subject_id=user_id
        )
        return [RoleGrant.model_validate(item) for item in data]

    async def get_role_permissions(self, role_id: str) -> list[PermissionRef]:
        """Get the permissions attached to a role."""
        data = await self._get(
            f"/roles/{role_id}/permissions", query="get_role_permissions", subject_id=role_id
        )
        return [PermissionRef.model_validate(item) for item in data]

    async def get_active_permission_ids(self, user_id: str) -> set[str]:
        """Get identifiers of permissions already active for a user."""
        data = await self._get(
            f"/users/{user_id}/active-permissions",
            query="get_active_permission_ids",
            subject_id=user_id,
        )
        return {str(item) for item in data}

    async def find_roles_by_name(
        self, organization_id: str, names: Sequence[str]
    ) -> list[RoleRef]:
        """Get catalog roles of an organization with one of the given names."""
        if not names:
            return []
        data = await self._get(
            f"/organizations/{organization_id}/roles",
            query="find_roles_by_name",
            subject_id=organization_id,
            params={"name": list(names)},
        )
        return [RoleRef.model_validate(item) for item in data]

    async def get_last_access_review(self, user_id: str) -> datetime | None:
        """Get when the user's access was last reviewed."""
        data = await self._get(
            f"/users/{user_id}/access-review", query="get_last_access_review", subject_id=user_id
        )
        reviewed_at = data.get("reviewed_at") if data else None
        return as_utc(datetime.fromisoformat(reviewed_at)) if reviewed_at else None

    async def get_request_window(self, user_id: str, since: datetime) -> list[RequestFacts]:
        """Get requests made by or for a user since a point in time."""
        data = await self._get(
            f"/users/{user_id}/requests",
            query="get_request_window",
            subject_id=user_id,
            params={"since": since.isoformat()},
        )
        return [RequestFacts.model_validate(item) for item in data]

    async def get_decided_requests(self, resource_type: str, limit: int) -> list[RequestFacts]:
        """Get approved or rejected requests of a resource type."""
        data = await self._get(
            "/requests",
            query="get_decided_requests",
            subject_id=None,
            params={"resource_type": resource_type, "decided": "true", "limit": limit},
        )
        return [RequestFacts.model_validate(item) for item in data]

    async def get_organization_decisions(
        self, organization_id: str, since: datetime
    ) -> list[RequestFacts]:
        """Get an organization's decided requests since a point in time."""
        data = await self._get(
            f"/organizations/{organization_id}/requests",
            query="get_organization_decisions",
            subject_id=organization_id,
            params={"decided": "true", "since": since.isoformat()},
        )
        return [RequestFacts.model_validate(item) for item in data]

    async def list_organization_users(self, organization_id: str) -> list[str]:
        """Get identifiers of all users in an organization."""
        data = await self._get(
            f"/organizations/{organization_id}/users",
            query="list_organization_users",
            subject_id=organization_id,
        )
        return [str(item) for item in data]

    async def list_unreviewed_anomalies(
        self, organization_id: str, limit: int
    ) -> list[Anomaly]:
        """Get unreviewed anomalies for an organization, newest first."""
        from vantage.risk.anomaly_detector import Anomaly

        data = await self._get(
            f"/organizations/{organization_id}/anomalies",
            query="list_unreviewed_anomalies",
            subject_id=organization_id,
            params={"reviewed": "false", "limit": limit},
        )
        return [Anomaly.from_dict(item) for item in data]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def insert_anomalies(self, user_id: str, anomalies: Sequence[Anomaly]) -> None:
        """Persist newly detected anomalies as unreviewed records."""
        payload = [{**a.to_dict(), "reviewed": False, "false_positive": False} for a in anomalies]
        await self._post(
            f"/users/{user_id}/anomalies",
            operation="insert_anomalies",
            payload=payload,
            record_count=len(payload),
        )

    async def mark_anomaly_reviewed(self, anomaly_id: str, is_false_positive: bool) -> None:
        """Record a reviewer decision on an anomaly."""
        status = await self._post(
            f"/anomalies/{anomaly_id}/review",
            operation="mark_anomaly_reviewed",
            payload={"false_positive": is_false_positive},
            record_count=1,
            allow_not_found=True,
        )
        if status == 404:
            raise RecordNotFoundError("anomaly", anomaly_id)
