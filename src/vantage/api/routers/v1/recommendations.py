"""Recommendation API endpoints.

- GET /recommendations/user/{user_id} - Ranked access recommendations
- GET /recommendations/request/{request_id} - Historical approval guidance
- GET /recommendations/onboarding - New-hire access package
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from vantage.api.dependencies import get_recommendation_engine
from vantage.api.schemas.errors import APIError
from vantage.api.schemas.recommendations import RecommendationListResponse
from vantage.recommendations.engine import RecommendationEngine

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


@router.get(
    "/user/{user_id}",
    response_model=RecommendationListResponse,
    summary="Recommend access for a user",
    description="""
    Combine peer, role, department, birthright and compliance strategies,
    merge duplicates keeping the most confident, and rank by priority and
    confidence.
    """,
    responses={
        200: {"description": "Ranked recommendations"},
        422: {"model": APIError, "description": "Malformed user id"},
    },
)
async def recommend_for_user(
    user_id: str,
    engine: Annotated[RecommendationEngine, Depends(get_recommendation_engine)],
) -> RecommendationListResponse:
    recommendations = await engine.get_recommendations(user_id)
    return RecommendationListResponse.from_recommendations(recommendations)


@router.get(
    "/request/{request_id}",
    response_model=RecommendationListResponse,
    summary="Approval guidance for a request",
    description="Suggest APPROVE, REJECT or REVIEW from past decisions on the same resource type.",
    responses={
        200: {"description": "Approval guidance (empty without history)"},
        422: {"model": APIError, "description": "Malformed request id"},
    },
)
async def recommend_for_request(
    request_id: str,
    engine: Annotated[RecommendationEngine, Depends(get_recommendation_engine)],
) -> RecommendationListResponse:
    recommendations = await engine.get_approval_recommendations(request_id)
    return RecommendationListResponse.from_recommendations(recommendations)


@router.get(
    "/onboarding",
    response_model=RecommendationListResponse,
    summary="New-hire access package",
    description="Confident, low-risk peer and birthright access for a department and job title.",
)
async def recommend_for_new_hire(
    engine: Annotated[RecommendationEngine, Depends(get_recommendation_engine)],
    department: Annotated[str, Query(min_length=1, max_length=128)],
    job_title: Annotated[str, Query(min_length=1, max_length=128)],
) -> RecommendationListResponse:
    recommendations = await engine.get_onboarding_recommendations(department, job_title)
    return RecommendationListResponse.from_recommendations(recommendations)
