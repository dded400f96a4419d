"""Integration tests for risk scoring and organization statistics endpoints."""

from datetime import UTC, datetime

import pytest
from httpx import AsyncClient

from vantage.facts.memory import InMemoryFactProvider
from vantage.facts.types import RequestFacts


@pytest.mark.asyncio
class TestUserRiskEndpoint:
    """Tests for POST /v1/risk/user/{user_id}."""

    async def test_assess_user(self, test_client: AsyncClient):
        """Test the seeded Finance analyst scores 55 (High)."""
        response = await test_client.post("/v1/risk/user/u-1")

        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 55
        assert data["level"] == "High"
        assert data["subject_id"] == "u-1"
        assert data["subject_type"] == "user"
        assert data["is_default"] is False
        assert [f["label"] for f in data["factors"]] == [
            "admin_roles",
            "privileged_access",
            "sod_violations",
        ]
        assert "X-Request-ID" in response.headers

    async def test_assess_critical_user(self, test_client: AsyncClient):
        response = await test_client.post("/v1/risk/user/u-3")

        data = response.json()
        assert data["score"] == 100
        assert data["level"] == "Critical"

    async def test_unknown_user_gets_default(self, test_client: AsyncClient):
        """Test missing facts yield the default assessment, not an error."""
        response = await test_client.post("/v1/risk/user/ghost")

        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 0
        assert data["level"] == "Low"
        assert data["is_default"] is True

    async def test_malformed_user_id(self, test_client: AsyncClient):
        response = await test_client.post("/v1/risk/user/bad%20id!")

        assert response.status_code == 422
        data = response.json()
        assert data["error_code"] == "invalid_identifier"
        assert data["details"]["kind"] == "user_id"
        assert data["request_id"] == response.headers["X-Request-ID"]


@pytest.mark.asyncio
class TestRequestRiskEndpoint:
    """Tests for POST /v1/risk/request/{request_id}."""

    async def test_assess_request(
        self, test_client: AsyncClient, seeded_provider: InMemoryFactProvider
    ):
        seeded_provider.add_request(
            RequestFacts(
                id="req-1",
                resource_type="read_only",
                resource_name="Wiki",
                requester_id="u-2",
                submitted_at=datetime.now(UTC),
                business_justification_length=80,
            )
        )

        response = await test_client.post("/v1/risk/request/req-1")

        data = response.json()
        assert response.status_code == 200
        assert data["subject_type"] == "request"
        assert data["is_default"] is False
        assert data["score"] >= 5
        assert data["factors"][0]["label"] == "resource_type"

    async def test_unknown_request_gets_default(self, test_client: AsyncClient):
        response = await test_client.post("/v1/risk/request/req-missing")

        assert response.status_code == 200
        assert response.json()["is_default"] is True


@pytest.mark.asyncio
class TestOrganizationRiskStats:
    """Tests for GET /v1/org/{organization_id}/risk-stats."""

    async def test_risk_stats(self, test_client: AsyncClient):
        response = await test_client.get("/v1/org/org-1/risk-stats")

        assert response.status_code == 200
        data = response.json()
        assert data["total_users"] == 3
        assert data["average_risk"] == 52
        assert data["high_risk_count"] == 1
        assert data["critical_risk_count"] == 1
        assert data["risk_distribution"] == {"Low": 1, "Medium": 0, "High": 1, "Critical": 1}

    async def test_empty_organization(self, test_client: AsyncClient):
        response = await test_client.get("/v1/org/org-empty/risk-stats")

        data = response.json()
        assert data["total_users"] == 0
        assert data["average_risk"] == 0

    async def test_malformed_organization_id(self, test_client: AsyncClient):
        response = await test_client.get("/v1/org/org%201/risk-stats")

        assert response.status_code == 422
        assert response.json()["error_code"] == "invalid_identifier"
