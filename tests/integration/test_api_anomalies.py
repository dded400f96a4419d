"""Integration tests for anomaly detection and review endpoints."""

from datetime import UTC, datetime, timedelta

import pytest
from httpx import AsyncClient

from vantage.facts.memory import InMemoryFactProvider
from vantage.facts.types import ActivityAction

from conftest import login


def seed_failed_logins(provider: InMemoryFactProvider, user_id: str, count: int) -> None:
    """Failed logins within the last few hours of the wall clock."""
    now = datetime.now(UTC)
    provider.add_activity(
        *(
            login(
                user_id,
                now - timedelta(minutes=10 * (i + 1)),
                action=ActivityAction.LOGIN_FAILED,
                ip_address="203.0.113.7",
            )
            for i in range(count)
        )
    )


@pytest.mark.asyncio
class TestUserAnomalyDetection:
    """Tests for GET /v1/anomalies/user/{user_id}."""

    async def test_detects_failed_login_burst(
        self, test_client: AsyncClient, seeded_provider: InMemoryFactProvider
    ):
        seed_failed_logins(seeded_provider, "u-2", 6)

        response = await test_client.get("/v1/anomalies/user/u-2")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        [item] = data["items"]
        assert item["type"] == "failed_logins"
        assert item["severity"] == "medium"
        assert item["reviewed"] is False
        assert item["metadata"]["ip_addresses"] == ["203.0.113.7"]

    async def test_quiet_user(self, test_client: AsyncClient):
        response = await test_client.get("/v1/anomalies/user/u-2")

        assert response.json() == {"items": [], "total": 0}

    async def test_unknown_user(self, test_client: AsyncClient):
        response = await test_client.get("/v1/anomalies/user/ghost")

        assert response.status_code == 200
        assert response.json()["total"] == 0

    async def test_malformed_user_id(self, test_client: AsyncClient):
        response = await test_client.get("/v1/anomalies/user/bad%20id")

        assert response.status_code == 422
        assert response.json()["error_code"] == "invalid_identifier"


@pytest.mark.asyncio
class TestReviewWorkflow:
    """Tests for the unreviewed queue and reviewer decisions."""

    async def test_detect_queue_review(
        self, test_client: AsyncClient, seeded_provider: InMemoryFactProvider
    ):
        """Test a detection enters the queue and leaves it once reviewed."""
        seed_failed_logins(seeded_provider, "u-2", 6)
        await test_client.get("/v1/anomalies/user/u-2")

        queue = (await test_client.get("/v1/anomalies/org/org-1/unreviewed")).json()
        assert queue["total"] == 1
        anomaly_id = queue["items"][0]["id"]

        review = await test_client.post(
            f"/v1/anomalies/{anomaly_id}/review", json={"false_positive": True}
        )

        assert review.status_code == 200
        assert review.json() == {
            "anomaly_id": anomaly_id,
            "reviewed": True,
            "false_positive": True,
        }
        stored = seeded_provider.anomalies[0]
        assert stored.reviewed is True
        assert stored.false_positive is True
        assert stored.reviewed_at is not None

        queue = (await test_client.get("/v1/anomalies/org/org-1/unreviewed")).json()
        assert queue["total"] == 0

    async def test_review_missing_anomaly(self, test_client: AsyncClient):
        response = await test_client.post("/v1/anomalies/a-missing/review", json={})

        assert response.status_code == 404
        data = response.json()
        assert data["error_code"] == "not_found"
        assert data["details"] == {"kind": "anomaly", "record_id": "a-missing"}

    async def test_queue_limit_validated(self, test_client: AsyncClient):
        response = await test_client.get("/v1/anomalies/org/org-1/unreviewed?limit=0")

        assert response.status_code == 422


@pytest.mark.asyncio
class TestOrganizationSweep:
    """Tests for POST /v1/anomalies/org/{organization_id}/sweep."""

    async def test_sweep_reports_users_with_findings(
        self, test_client: AsyncClient, seeded_provider: InMemoryFactProvider
    ):
        seed_failed_logins(seeded_provider, "u-2", 12)

        response = await test_client.post("/v1/anomalies/org/org-1/sweep")

        assert response.status_code == 200
        data = response.json()
        assert data["organization_id"] == "org-1"
        assert data["users_with_findings"] == 1
        assert data["total_anomalies"] == 1
        assert data["findings"]["u-2"][0]["severity"] == "high"

    async def test_sweep_empty_organization(self, test_client: AsyncClient):
        response = await test_client.post("/v1/anomalies/org/org-empty/sweep")

        assert response.json()["users_with_findings"] == 0
