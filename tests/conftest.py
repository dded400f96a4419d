"""Pytest fixtures for Vantage tests."""

from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
import pytest_asyncio
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from vantage.config.settings import Settings
from vantage.facts.memory import InMemoryFactProvider
from vantage.facts.types import (
    ActivityAction,
    ActivityEvent,
    ActivityMetadata,
    IdentityFacts,
    Location,
    RoleGrant,
)

# Wednesday, mid-afternoon UTC
NOW = datetime(2026, 3, 18, 15, 0, tzinfo=UTC)


# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    This ensures tests that modify structlog global state
    don't affect other tests.
    """
    yield
    # Reset structlog to default configuration after each test
    structlog.reset_defaults()
    # Re-apply minimal configuration for consistent behavior
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Create settings for testing."""
    return Settings(
        ENVIRONMENT="test",
        DEBUG=True,
        log_level="DEBUG",
        fact_service_url=None,
        metrics_enabled=True,
    )


@pytest.fixture
def patch_settings(test_settings: Settings) -> Generator[Settings, None, None]:
    """Patch get_settings to return test settings."""
    with patch("vantage.config.settings.get_settings", return_value=test_settings):
        yield test_settings


# =============================================================================
# Fact helpers
# =============================================================================


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation time."""
    return NOW


def login(
    user_id: str,
    at: datetime,
    *,
    city: str | None = None,
    country: str | None = None,
    lat: float | None = None,
    lon: float | None = None,
    action: ActivityAction = ActivityAction.LOGIN,
    ip_address: str | None = None,
) -> ActivityEvent:
    """Build a login event with an optional location."""
    location = None
    if any(v is not None for v in (city, country, lat, lon)):
        location = Location(city=city, country=country, lat=lat, lon=lon)
    return ActivityEvent(
        user_id=user_id,
        action=action,
        timestamp=at,
        metadata=ActivityMetadata(location=location, ip_address=ip_address),
    )


def hours_ago(hours: float) -> datetime:
    """A point in time relative to the fixed evaluation time."""
    return NOW - timedelta(hours=hours)


def role(role_id: str, name: str | None = None, is_admin: bool = False) -> RoleGrant:
    """Build a role grant."""
    return RoleGrant(role_id=role_id, role_name=name or role_id, is_admin=is_admin)


@pytest.fixture
def provider() -> InMemoryFactProvider:
    """Empty in-memory fact provider."""
    return InMemoryFactProvider()


@pytest.fixture
def seeded_provider(provider: InMemoryFactProvider) -> InMemoryFactProvider:
    """Provider with a small organization.

    org-1 holds u-1 (High risk), u-2 (Low risk) and u-3 (Critical risk).
    Login times are relative to the wall clock since the provider-backed
    entry points score against the current time.
    """
    provider.add_identity(
        IdentityFacts(
            id="u-1",
            organization_id="org-1",
            department="Finance",
            job_title="Analyst",
            admin_role_count=2,
            has_privileged_access=True,
            sod_violation_count=1,
            last_login_at=datetime.now(UTC) - timedelta(days=40),
            total_role_count=4,
        )
    )
    provider.add_identity(
        IdentityFacts(
            id="u-2",
            organization_id="org-1",
            department="Engineering",
            job_title="Developer",
            last_login_at=datetime.now(UTC) - timedelta(days=1),
            total_role_count=2,
        )
    )
    provider.add_identity(
        IdentityFacts(
            id="u-3",
            organization_id="org-1",
            department="Engineering",
            job_title="Platform Admin",
            admin_role_count=3,
            has_privileged_access=True,
            sod_violation_count=2,
            last_login_at=None,
            failed_login_attempts=6,
            total_role_count=9,
        )
    )
    return provider


# =============================================================================
# API fixtures
# =============================================================================


@pytest.fixture
def test_app(test_settings: Settings, seeded_provider: InMemoryFactProvider) -> FastAPI:
    """Create a FastAPI test application over the seeded provider."""
    from vantage.api.app import create_app

    return create_app(settings=test_settings, provider=seeded_provider)


@pytest_asyncio.fixture
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for API testing.

    Provides an httpx.AsyncClient configured to call the test application
    directly without network overhead.
    """
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        yield client
