"""Anomaly Detector for behavioral signals in identity activity.

This module provides the AnomalyDetector that:
1. Runs independent behavioral checks over bounded activity windows
2. Executes the checks concurrently, each with its own timeout and failure
   boundary, joined at a single barrier
3. Optionally derives a composite suspicious-pattern finding
4. Hands new detections to the fact provider for review tracking
5. Sweeps whole organizations with bounded concurrency
"""

import asyncio
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from time import perf_counter
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field
from uuid_utils.compat import uuid7

from vantage.core.concurrency import gather_bounded
from vantage.core.exceptions import RecordNotFoundError
from vantage.core.identifiers import validate_identifier
from vantage.core.logging import LogContext, get_logger
from vantage.facts.protocol import FactProvider
from vantage.facts.types import ACCESS_CHANGE_ACTIONS, ActivityAction, ActivityEvent, Location
from vantage.observability.metrics import (
    observe_batch_duration,
    observe_check_duration,
    record_anomaly,
    record_check_failure,
)
from vantage.risk.geo import haversine_miles

logger = get_logger(__name__)


# =============================================================================
# Enums and Constants
# =============================================================================


class AnomalyType(str, Enum):
    """Types of behavioral anomalies that can be detected."""

    IMPOSSIBLE_TRAVEL = "impossible_travel"
    UNUSUAL_TIME = "unusual_time"
    NEW_LOCATION = "new_location"
    EXCESSIVE_REQUESTS = "excessive_requests"
    FAILED_LOGINS = "failed_logins"
    RAPID_PERMISSION_CHANGES = "rapid_permission_changes"
    DORMANT_REACTIVATION = "dormant_reactivation"
    CONCURRENT_SESSIONS = "concurrent_sessions"
    SUSPICIOUS_PATTERN = "suspicious_pattern"


class AnomalySeverity(str, Enum):
    """Severity assigned at detection time."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# =============================================================================
# Models
# =============================================================================


@dataclass
class Anomaly:
    """A detected behavioral anomaly.

    Type, severity and content are fixed at detection time. Only the review
    fields change, and only through the reviewer action.
    """

    type: AnomalyType
    severity: AnomalySeverity
    title: str
    description: str
    user_id: str
    id: str = field(default_factory=lambda: str(uuid7()))
    detected_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)
    reviewed: bool = False
    false_positive: bool = False
    reviewed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "user_id": self.user_id,
            "detected_at": self.detected_at.isoformat(),
            "metadata": self.metadata,
            "reviewed": self.reviewed,
            "false_positive": self.false_positive,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Anomaly":
        """Rebuild an anomaly from its dictionary form."""
        reviewed_at = data.get("reviewed_at")
        return cls(
            id=str(data["id"]),
            type=AnomalyType(data["type"]),
            severity=AnomalySeverity(data["severity"]),
            title=data["title"],
            description=data["description"],
            user_id=str(data["user_id"]),
            detected_at=datetime.fromisoformat(data["detected_at"]),
            metadata=dict(data.get("metadata") or {}),
            reviewed=bool(data.get("reviewed", False)),
            false_positive=bool(data.get("false_positive", False)),
            reviewed_at=datetime.fromisoformat(reviewed_at) if reviewed_at else None,
        )


class DetectorConfig(BaseModel):
    """Configuration for anomaly detector."""

    # Impossible travel
    travel_window_hours: int = Field(default=24, ge=1, description="Login window for travel")
    travel_login_limit: int = Field(default=10, ge=2, description="Most recent logins compared")
    travel_distance_miles: float = Field(
        default=500.0, gt=0, description="Distance that cannot be covered in time"
    )
    travel_max_hours: float = Field(
        default=4.0, gt=0, description="Elapsed time under which distance is impossible"
    )

    # Unusual login time
    unusual_time_window_days: int = Field(default=7, ge=1, description="Login window")
    business_hours_start: int = Field(
        default=6, ge=0, le=23, description="Earlier local hours are off-hours"
    )
    business_hours_end: int = Field(
        default=22, ge=0, le=23, description="Later local hours are off-hours"
    )
    unusual_time_min_logins: int = Field(default=3, ge=1, description="Off-hours logins to flag")

    # New location
    location_baseline_days: int = Field(default=90, ge=1, description="Baseline history window")
    location_recent_hours: int = Field(default=24, ge=1, description="Recent logins window")

    # Excessive requests
    request_window_days: int = Field(default=7, ge=1, description="Request volume window")
    request_threshold: int = Field(default=10, ge=1, description="Requests above this flag")
    request_high_threshold: int = Field(
        default=20, ge=1, description="Requests above this are high severity"
    )

    # Failed logins
    failed_login_window_hours: int = Field(default=24, ge=1, description="Failed login window")
    failed_login_threshold: int = Field(default=5, ge=1, description="Failures to flag")
    failed_login_high_threshold: int = Field(
        default=10, ge=1, description="Failures above this are high severity"
    )

    # Rapid permission changes
    permission_change_window_hours: int = Field(default=24, ge=1, description="Change window")
    permission_change_threshold: int = Field(default=5, ge=1, description="Changes to flag")

    # Dormant reactivation
    dormant_days: int = Field(default=90, ge=1, description="Days since last login to be dormant")
    reactivation_window_hours: int = Field(
        default=24, ge=1, description="Window in which a new login counts as reactivation"
    )

    # Concurrent sessions
    session_window_minutes: int = Field(default=60, ge=1, description="Session window")
    session_login_limit: int = Field(default=5, ge=2, description="Most recent logins compared")
    session_gap_minutes: float = Field(
        default=15.0, gt=0, description="Gap under which two countries are concurrent"
    )

    # Composite pattern (disabled unless explicitly requested)
    detect_suspicious_pattern: bool = Field(
        default=False, description="Derive a composite finding from several anomalies"
    )
    suspicious_pattern_min_findings: int = Field(
        default=2, ge=2, description="Other findings needed for the composite"
    )

    # Execution
    check_timeout_seconds: float | None = Field(
        default=10.0, gt=0, description="Per-check timeout; None disables it"
    )
    persist_anomalies: bool = Field(default=True, description="Insert new detections")
    persist_timeout_seconds: float | None = Field(
        default=5.0, gt=0, description="Bound on the insert; None disables it"
    )
    max_concurrency: int = Field(default=10, ge=1, description="Users swept concurrently")
    unreviewed_default_limit: int = Field(default=50, ge=1, description="Reviewer queue size")

    reference_timezone: str = Field(
        default="UTC", description="Zone used to evaluate off-hours logins"
    )


# =============================================================================
# Anomaly Detector
# =============================================================================


class AnomalyDetector:
    """Detects behavioral anomalies in a user's recent activity.

    Each check reads its own bounded window through the fact provider. A check
    whose data cannot be fetched, that raises, or that times out contributes
    no anomaly and never affects its siblings.

    Example:
        ```python
        detector = AnomalyDetector(provider)

        anomalies = await detector.detect_user_anomalies("u-1")
        for anomaly in anomalies:
            print(anomaly.severity.value, anomaly.title)

        await detector.mark_reviewed(anomalies[0].id, is_false_positive=True)
        ```
    """

    def __init__(self, provider: FactProvider, config: DetectorConfig | None = None):
        """Initialize the anomaly detector.

        Args:
            provider: Source of activity facts and anomaly persistence.
            config: Detector configuration.
        """
        self.provider = provider
        self.config = config or DetectorConfig()
        self._zone = ZoneInfo(self.config.reference_timezone)

    @property
    def checks(self) -> dict[str, Callable[[str, datetime], Awaitable["Anomaly | None"]]]:
        """Independent checks keyed by name."""
        return {
            AnomalyType.IMPOSSIBLE_TRAVEL.value: self._check_impossible_travel,
            AnomalyType.UNUSUAL_TIME.value: self._check_unusual_login_time,
            AnomalyType.NEW_LOCATION.value: self._check_new_location,
            AnomalyType.EXCESSIVE_REQUESTS.value: self._check_excessive_requests,
            AnomalyType.FAILED_LOGINS.value: self._check_failed_logins,
            AnomalyType.RAPID_PERMISSION_CHANGES.value: self._check_rapid_permission_changes,
            AnomalyType.DORMANT_REACTIVATION.value: self._check_dormant_reactivation,
            AnomalyType.CONCURRENT_SESSIONS.value: self._check_concurrent_sessions,
        }

    async def detect_user_anomalies(
        self, user_id: str, now: datetime | None = None
    ) -> list[Anomaly]:
        """Run every check for a user and return the findings.

        Args:
            user_id: User to evaluate.
            now: Evaluation time (defaults to current UTC time).

        Returns:
            Detected anomalies. Order is not significant.

        Raises:
            IdentifierValidationError: If the user id is malformed.
        """
        validate_identifier("user_id", user_id)
        now = now or datetime.now(UTC)

        names = list(self.checks)
        results = await asyncio.gather(
            *(self._run_check(name, check, user_id, now) for name, check in self.checks.items()),
            return_exceptions=True,
        )

        anomalies: list[Anomaly] = []
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                record_check_failure(name)
                logger.warning(
                    "Anomaly check failed",
                    check=name,
                    user_id=user_id,
                    error_type=type(result).__name__,
                    error=str(result),
                )
            elif result is not None:
                anomalies.append(result)

        if self.config.detect_suspicious_pattern:
            composite = self._derive_suspicious_pattern(user_id, anomalies, now)
            if composite is not None:
                anomalies.append(composite)

        for anomaly in anomalies:
            record_anomaly(anomaly.type.value, anomaly.severity.value)

        if anomalies:
            logger.info(
                "Anomalies detected",
                user_id=user_id,
                total=len(anomalies),
                by_type=[a.type.value for a in anomalies],
            )
            if self.config.persist_anomalies:
                await self._persist(user_id, anomalies)

        return anomalies

    async def detect_organization_anomalies(
        self, organization_id: str, now: datetime | None = None
    ) -> dict[str, list[Anomaly]]:
        """Sweep every user of an organization.

        Args:
            organization_id: Organization to sweep.
            now: Evaluation time shared by the whole sweep.

        Returns:
            Mapping of user id to anomalies; users without findings are omitted.

        Raises:
            IdentifierValidationError: If the organization id is malformed.
        """
        validate_identifier("organization_id", organization_id)
        with LogContext(operation="org_anomaly_sweep", organization_id=organization_id):
            return await self._sweep_organization(organization_id, now)

    async def _sweep_organization(
        self, organization_id: str, now: datetime | None
    ) -> dict[str, list[Anomaly]]:
        start = perf_counter()
        try:
            user_ids = await self.provider.list_organization_users(organization_id)
        except Exception as e:
            logger.warning(
                "Organization user listing failed", organization_id=organization_id, error=str(e)
            )
            return {}

        async def _detect(user_id: str) -> list[Anomaly]:
            return await self.detect_user_anomalies(user_id, now=now)

        results = await gather_bounded(user_ids, _detect, self.config.max_concurrency)

        findings: dict[str, list[Anomaly]] = {}
        for user_id, result in zip(user_ids, results):
            if isinstance(result, BaseException):
                logger.warning("User anomaly sweep failed", user_id=user_id, error=str(result))
            elif result:
                findings[user_id] = result

        observe_batch_duration("organization_anomaly_sweep", perf_counter() - start)
        logger.info(
            "Organization anomaly sweep complete",
            organization_id=organization_id,
            users=len(user_ids),
            users_with_findings=len(findings),
        )
        return findings

    async def get_unreviewed_anomalies(
        self, organization_id: str, limit: int | None = None
    ) -> list[Anomaly]:
        """Get the reviewer queue for an organization, newest first.

        Returns an empty list when the store cannot be read.

        Raises:
            IdentifierValidationError: If the organization id is malformed.
        """
        validate_identifier("organization_id", organization_id)
        limit = limit or self.config.unreviewed_default_limit
        try:
            return await self.provider.list_unreviewed_anomalies(organization_id, limit)
        except Exception as e:
            logger.warning(
                "Unreviewed anomaly listing failed", organization_id=organization_id, error=str(e)
            )
            return []

    async def mark_reviewed(self, anomaly_id: str, is_false_positive: bool = False) -> bool:
        """Record a reviewer decision.

        Args:
            anomaly_id: Anomaly being reviewed.
            is_false_positive: Whether the reviewer judged it a false positive.

        Returns:
            True if the decision was stored, False if the write failed.

        Raises:
            IdentifierValidationError: If the anomaly id is malformed.
            RecordNotFoundError: If the anomaly does not exist.
        """
        validate_identifier("anomaly_id", anomaly_id)
        try:
            await self.provider.mark_anomaly_reviewed(anomaly_id, is_false_positive)
        except RecordNotFoundError:
            raise
        except Exception as e:
            logger.error(
                "Anomaly review update failed",
                anomaly_id=anomaly_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return False

        logger.info(
            "Anomaly reviewed", anomaly_id=anomaly_id, false_positive=is_false_positive
        )
        return True

    # -------------------------------------------------------------------------
    # Execution helpers
    # -------------------------------------------------------------------------

    async def _run_check(
        self,
        name: str,
        check: Callable[[str, datetime], Awaitable["Anomaly | None"]],
        user_id: str,
        now: datetime,
    ) -> "Anomaly | None":
        with observe_check_duration(name):
            return await asyncio.wait_for(check(user_id, now), self.config.check_timeout_seconds)

    async def _persist(self, user_id: str, anomalies: list[Anomaly]) -> None:
        """Insert detections; a failure is logged and never retracts the result."""
        try:
            await asyncio.wait_for(
                self.provider.insert_anomalies(user_id, anomalies),
                self.config.persist_timeout_seconds,
            )
        except Exception as e:
            logger.error(
                "Anomaly persistence failed",
                user_id=user_id,
                count=len(anomalies),
                error_type=type(e).__name__,
                error=str(e),
            )

    async def _logins(
        self,
        user_id: str,
        since: datetime,
        limit: int | None = None,
        action: ActivityAction = ActivityAction.LOGIN,
    ) -> list[ActivityEvent]:
        return await self.provider.get_activity_window(user_id, [action], since, limit)

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    async def _check_impossible_travel(self, user_id: str, now: datetime) -> "Anomaly | None":
        """Consecutive logins too far apart to travel between in the elapsed time."""
        cfg = self.config
        logins = await self._logins(
            user_id, now - timedelta(hours=cfg.travel_window_hours), cfg.travel_login_limit
        )
        logins.sort(key=lambda e: e.timestamp, reverse=True)

        for newer, older in zip(logins, logins[1:]):
            newer_loc, older_loc = newer.location, older.location
            if newer_loc is None or older_loc is None:
                continue
            if not (newer_loc.has_coordinates and older_loc.has_coordinates):
                continue

            distance = haversine_miles(older_loc.lat, older_loc.lon, newer_loc.lat, newer_loc.lon)
            elapsed_hours = (newer.timestamp - older.timestamp).total_seconds() / 3600

            if distance > cfg.travel_distance_miles and 0 < elapsed_hours < cfg.travel_max_hours:
                return Anomaly(
                    type=AnomalyType.IMPOSSIBLE_TRAVEL,
                    severity=AnomalySeverity.HIGH,
                    title="Impossible Travel Detected",
                    description=(
                        f"User logged in from {_place(older_loc)} and {_place(newer_loc)} "
                        f"({round(distance)} miles apart) within "
                        f"{round(elapsed_hours * 60)} minutes"
                    ),
                    user_id=user_id,
                    detected_at=now,
                    metadata={
                        "distance_miles": round(distance, 1),
                        "time_diff_hours": round(elapsed_hours, 3),
                        "locations": [
                            older_loc.model_dump(mode="json"),
                            newer_loc.model_dump(mode="json"),
                        ],
                        "timestamps": [older.timestamp.isoformat(), newer.timestamp.isoformat()],
                    },
                )
        return None

    async def _check_unusual_login_time(self, user_id: str, now: datetime) -> "Anomaly | None":
        """Repeated logins outside business hours in the reference timezone."""
        cfg = self.config
        logins = await self._logins(user_id, now - timedelta(days=cfg.unusual_time_window_days))

        off_hours = [
            e.timestamp.astimezone(self._zone)
            for e in logins
            if not (
                cfg.business_hours_start
                <= e.timestamp.astimezone(self._zone).hour
                <= cfg.business_hours_end
            )
        ]
        if len(off_hours) < cfg.unusual_time_min_logins:
            return None

        off_hours.sort(reverse=True)
        times = [t.strftime("%I:%M %p") for t in off_hours]
        return Anomaly(
            type=AnomalyType.UNUSUAL_TIME,
            severity=AnomalySeverity.MEDIUM,
            title="Unusual Login Times Detected",
            description=(
                f"{len(off_hours)} logins detected during off-hours (outside "
                f"{_hour_label(cfg.business_hours_start)} - "
                f"{_hour_label(cfg.business_hours_end)}) in the past "
                f"{cfg.unusual_time_window_days} days. Times: {', '.join(times[:3])}"
            ),
            user_id=user_id,
            detected_at=now,
            metadata={"off_hours_count": len(off_hours), "times": times},
        )

    async def _check_new_location(self, user_id: str, now: datetime) -> "Anomaly | None":
        """A recent login from a country absent from the baseline history."""
        cfg = self.config
        recent_cutoff = now - timedelta(hours=cfg.location_recent_hours)
        logins = await self._logins(user_id, now - timedelta(days=cfg.location_baseline_days))

        known_countries = {e.country for e in logins if e.timestamp < recent_cutoff and e.country}
        if not known_countries:
            return None

        recent = sorted(
            (e for e in logins if e.timestamp >= recent_cutoff and e.country),
            key=lambda e: e.timestamp,
            reverse=True,
        )
        for login in recent:
            if login.country not in known_countries:
                location = login.location
                return Anomaly(
                    type=AnomalyType.NEW_LOCATION,
                    severity=AnomalySeverity.MEDIUM,
                    title="Login from New Location",
                    description=(
                        f"User logged in from {_place(location)} - a location not seen in the "
                        f"past {cfg.location_baseline_days} days"
                    ),
                    user_id=user_id,
                    detected_at=now,
                    metadata={
                        "new_location": location.model_dump(mode="json") if location else None,
                        "timestamp": login.timestamp.isoformat(),
                        "known_countries": sorted(known_countries),
                    },
                )
        return None

    async def _check_excessive_requests(self, user_id: str, now: datetime) -> "Anomaly | None":
        """Access request volume well above the weekly baseline."""
        cfg = self.config
        requests = await self.provider.get_request_window(
            user_id, now - timedelta(days=cfg.request_window_days)
        )
        count = len(requests)
        if count <= cfg.request_threshold:
            return None

        severity = (
            AnomalySeverity.HIGH if count > cfg.request_high_threshold else AnomalySeverity.MEDIUM
        )
        return Anomaly(
            type=AnomalyType.EXCESSIVE_REQUESTS,
            severity=severity,
            title="Unusual Request Volume",
            description=(
                f"{count} access requests submitted in the past {cfg.request_window_days} days "
                "(typical range: 1-3 per week)"
            ),
            user_id=user_id,
            detected_at=now,
            metadata={
                "request_count": count,
                "threshold": cfg.request_threshold,
                "recent_requests": [r.resource_name for r in requests[:5]],
            },
        )

    async def _check_failed_logins(self, user_id: str, now: datetime) -> "Anomaly | None":
        """Burst of failed authentication attempts."""
        cfg = self.config
        failures = await self._logins(
            user_id,
            now - timedelta(hours=cfg.failed_login_window_hours),
            action=ActivityAction.LOGIN_FAILED,
        )
        count = len(failures)
        if count < cfg.failed_login_threshold:
            return None

        severity = (
            AnomalySeverity.HIGH
            if count > cfg.failed_login_high_threshold
            else AnomalySeverity.MEDIUM
        )
        ip_addresses = list(
            dict.fromkeys(e.metadata.ip_address for e in failures if e.metadata.ip_address)
        )
        return Anomaly(
            type=AnomalyType.FAILED_LOGINS,
            severity=severity,
            title="Multiple Failed Login Attempts",
            description=(
                f"{count} failed login attempts detected in the past "
                f"{cfg.failed_login_window_hours} hours. Possible credential stuffing or "
                "brute force attack."
            ),
            user_id=user_id,
            detected_at=now,
            metadata={"failed_count": count, "ip_addresses": ip_addresses},
        )

    async def _check_rapid_permission_changes(
        self, user_id: str, now: datetime
    ) -> "Anomaly | None":
        """Many role or permission grants and revocations in a short window."""
        cfg = self.config
        changes = await self.provider.get_activity_window(
            user_id,
            sorted(ACCESS_CHANGE_ACTIONS, key=lambda a: a.value),
            now - timedelta(hours=cfg.permission_change_window_hours),
        )
        if len(changes) < cfg.permission_change_threshold:
            return None

        return Anomaly(
            type=AnomalyType.RAPID_PERMISSION_CHANGES,
            severity=AnomalySeverity.HIGH,
            title="Rapid Permission Changes Detected",
            description=(
                f"{len(changes)} permission or role changes in the past "
                f"{cfg.permission_change_window_hours} hours. This may indicate unauthorized "
                "access or compromised credentials."
            ),
            user_id=user_id,
            detected_at=now,
            metadata={
                "change_count": len(changes),
                "changes": [
                    {"action": c.action.value, "timestamp": c.timestamp.isoformat()}
                    for c in changes
                ],
            },
        )

    async def _check_dormant_reactivation(self, user_id: str, now: datetime) -> "Anomaly | None":
        """A long-dormant account logging in again."""
        cfg = self.config
        facts = await self.provider.get_identity_facts(user_id)
        if facts.last_login_at is None:
            return None

        days_dormant = math.floor((now - facts.last_login_at).total_seconds() / 86400)
        if days_dormant <= cfg.dormant_days:
            return None

        recent = await self._logins(
            user_id, now - timedelta(hours=cfg.reactivation_window_hours), limit=1
        )
        if not recent:
            return None

        return Anomaly(
            type=AnomalyType.DORMANT_REACTIVATION,
            severity=AnomalySeverity.MEDIUM,
            title="Dormant Account Reactivated",
            description=(
                f"Account was inactive for {days_dormant} days and suddenly became active. "
                "Verify this is legitimate activity."
            ),
            user_id=user_id,
            detected_at=now,
            metadata={
                "days_dormant": days_dormant,
                "reactivation_time": recent[0].timestamp.isoformat(),
            },
        )

    async def _check_concurrent_sessions(self, user_id: str, now: datetime) -> "Anomaly | None":
        """Logins from two countries within minutes of each other."""
        cfg = self.config
        logins = await self._logins(
            user_id,
            now - timedelta(minutes=cfg.session_window_minutes),
            cfg.session_login_limit,
        )
        logins.sort(key=lambda e: e.timestamp, reverse=True)

        countries: dict[str, None] = {}
        for newer, older in zip(logins, logins[1:]):
            if not (newer.country and older.country) or newer.country == older.country:
                continue
            gap_minutes = (newer.timestamp - older.timestamp).total_seconds() / 60
            if gap_minutes < cfg.session_gap_minutes:
                countries[newer.country] = None
                countries[older.country] = None

        if not countries:
            return None

        return Anomaly(
            type=AnomalyType.CONCURRENT_SESSIONS,
            severity=AnomalySeverity.HIGH,
            title="Concurrent Sessions from Different Locations",
            description=(
                f"User has active sessions from multiple countries: {', '.join(countries)}. "
                "Possible account sharing or compromise."
            ),
            user_id=user_id,
            detected_at=now,
            metadata={"locations": list(countries), "session_count": len(logins)},
        )

    def _derive_suspicious_pattern(
        self, user_id: str, anomalies: list[Anomaly], now: datetime
    ) -> "Anomaly | None":
        """Composite finding over the other checks' results."""
        if len(anomalies) < self.config.suspicious_pattern_min_findings:
            return None

        high_count = sum(
            1 for a in anomalies if a.severity in (AnomalySeverity.HIGH, AnomalySeverity.CRITICAL)
        )
        severity = AnomalySeverity.CRITICAL if high_count >= 2 else AnomalySeverity.HIGH
        types = [a.type.value for a in anomalies]
        return Anomaly(
            type=AnomalyType.SUSPICIOUS_PATTERN,
            severity=severity,
            title="Suspicious Activity Pattern",
            description=(
                f"{len(anomalies)} behavioral anomalies detected together "
                f"({', '.join(types)}). Review the account as a whole."
            ),
            user_id=user_id,
            detected_at=now,
            metadata={"component_types": types, "component_ids": [a.id for a in anomalies]},
        )


# =============================================================================
# Helpers
# =============================================================================


def _place(location: Location | None) -> str:
    if location is None:
        return "Unknown, Unknown"
    return f"{location.city or 'Unknown'}, {location.country or 'Unknown'}"


def _hour_label(hour: int) -> str:
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12} {suffix}"


def create_anomaly_detector(
    provider: FactProvider, config: DetectorConfig | None = None
) -> AnomalyDetector:
    """Create an anomaly detector.

    Args:
        provider: Source of activity facts and anomaly persistence.
        config: Optional detector configuration.

    Returns:
        Configured AnomalyDetector.
    """
    return AnomalyDetector(provider, config=config)
