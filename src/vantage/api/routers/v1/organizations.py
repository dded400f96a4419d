"""Organization API endpoints.

- GET /org/{organization_id}/risk-stats - Organization-wide risk statistics
- GET /org/{organization_id}/auto-approval - Resources suited to auto-approval
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from vantage.api.dependencies import get_recommendation_engine, get_risk_aggregator
from vantage.api.schemas.errors import APIError
from vantage.api.schemas.recommendations import AutoApprovalListResponse
from vantage.api.schemas.risk import OrganizationRiskStatsResponse
from vantage.recommendations.engine import RecommendationEngine
from vantage.risk.risk_aggregator import RiskAggregator

router = APIRouter(prefix="/org", tags=["organizations"])


@router.get(
    "/{organization_id}/risk-stats",
    response_model=OrganizationRiskStatsResponse,
    summary="Organization risk statistics",
    description="""
    Score every user of the organization and summarize: average score,
    High and Critical counts, and the distribution across levels.
    An organization without users yields all zeros.
    """,
    responses={
        200: {"description": "Risk statistics"},
        422: {"model": APIError, "description": "Malformed organization id"},
    },
)
async def get_risk_stats(
    organization_id: str,
    aggregator: Annotated[RiskAggregator, Depends(get_risk_aggregator)],
) -> OrganizationRiskStatsResponse:
    stats = await aggregator.get_organization_stats(organization_id)
    return OrganizationRiskStatsResponse.from_stats(stats)


@router.get(
    "/{organization_id}/auto-approval",
    response_model=AutoApprovalListResponse,
    summary="Auto-approval candidates",
    description="""
    Group the last 90 days of approved and rejected requests by resource.
    Resources with at least 10 decisions are reported; auto-approval is
    recommended at a 95% approval rate over 20 or more decisions.
    """,
    responses={
        200: {"description": "Per-resource approval statistics"},
        422: {"model": APIError, "description": "Malformed organization id"},
    },
)
async def get_auto_approval_candidates(
    organization_id: str,
    engine: Annotated[RecommendationEngine, Depends(get_recommendation_engine)],
) -> AutoApprovalListResponse:
    candidates = await engine.get_auto_approval_candidates(organization_id)
    return AutoApprovalListResponse.from_candidates(organization_id, candidates)
