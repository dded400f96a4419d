"""Risk scoring API endpoints.

- POST /risk/user/{user_id} - Assess a user
- POST /risk/request/{request_id} - Assess a pending access request
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from vantage.api.dependencies import get_risk_scorer
from vantage.api.schemas.errors import APIError
from vantage.api.schemas.risk import RiskAssessmentResponse
from vantage.core.logging import get_logger
from vantage.risk.risk_scorer import RiskScorer

logger = get_logger(__name__)

router = APIRouter(prefix="/risk", tags=["risk"])


@router.post(
    "/user/{user_id}",
    response_model=RiskAssessmentResponse,
    summary="Assess user risk",
    description="""
    Compute the current risk score of a user from their identity facts:
    admin roles, privileged access, SoD violations, login recency,
    failed logins and role accumulation.

    When the user's facts cannot be fetched the default assessment
    (score 0, `is_default=true`) is returned instead of an error.
    """,
    responses={
        200: {"description": "Risk assessment"},
        422: {"model": APIError, "description": "Malformed user id"},
    },
)
async def assess_user(
    user_id: str,
    scorer: Annotated[RiskScorer, Depends(get_risk_scorer)],
) -> RiskAssessmentResponse:
    assessment = await scorer.assess_user(user_id)
    logger.debug(
        "User risk assessed", user_id=user_id, score=assessment.score, level=assessment.level.value
    )
    return RiskAssessmentResponse.from_assessment(assessment)


@router.post(
    "/request/{request_id}",
    response_model=RiskAssessmentResponse,
    summary="Assess access request risk",
    description="""
    Compute the risk of granting a pending access request from the
    requested resource type, the requester's own risk, timing, SoD
    conflicts, urgency and justification quality.
    """,
    responses={
        200: {"description": "Risk assessment"},
        422: {"model": APIError, "description": "Malformed request id"},
    },
)
async def assess_request(
    request_id: str,
    scorer: Annotated[RiskScorer, Depends(get_risk_scorer)],
) -> RiskAssessmentResponse:
    assessment = await scorer.assess_request(request_id)
    logger.debug(
        "Request risk assessed",
        request_id=request_id,
        score=assessment.score,
        level=assessment.level.value,
    )
    return RiskAssessmentResponse.from_assessment(assessment)
