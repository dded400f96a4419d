"""Anomaly detection API endpoints.

- GET /anomalies/user/{user_id} - Run detection for one user
- POST /anomalies/{anomaly_id}/review - Record a reviewer decision
- GET /anomalies/org/{organization_id}/unreviewed - Reviewer queue
- POST /anomalies/org/{organization_id}/sweep - Detect across an organization
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from vantage.api.dependencies import get_anomaly_detector
from vantage.api.schemas.anomalies import (
    AnomalyListResponse,
    AnomalyReviewRequest,
    AnomalyReviewResponse,
    OrganizationSweepResponse,
)
from vantage.api.schemas.errors import APIError
from vantage.core.logging import get_logger
from vantage.risk.anomaly_detector import AnomalyDetector

logger = get_logger(__name__)

router = APIRouter(prefix="/anomalies", tags=["anomalies"])


@router.get(
    "/user/{user_id}",
    response_model=AnomalyListResponse,
    summary="Detect user anomalies",
    description="""
    Run every behavioral check over the user's recent activity and return
    the findings. New findings are stored as unreviewed anomalies. A check
    whose data cannot be fetched contributes nothing.
    """,
    responses={
        200: {"description": "Detected anomalies"},
        422: {"model": APIError, "description": "Malformed user id"},
    },
)
async def detect_user_anomalies(
    user_id: str,
    detector: Annotated[AnomalyDetector, Depends(get_anomaly_detector)],
) -> AnomalyListResponse:
    anomalies = await detector.detect_user_anomalies(user_id)
    return AnomalyListResponse.from_anomalies(anomalies)


@router.post(
    "/{anomaly_id}/review",
    response_model=AnomalyReviewResponse,
    summary="Review an anomaly",
    description="Mark an anomaly reviewed, optionally as a false positive.",
    responses={
        200: {"description": "Review outcome"},
        404: {"model": APIError, "description": "Anomaly not found"},
        422: {"model": APIError, "description": "Malformed anomaly id"},
    },
)
async def review_anomaly(
    anomaly_id: str,
    body: AnomalyReviewRequest,
    detector: Annotated[AnomalyDetector, Depends(get_anomaly_detector)],
) -> AnomalyReviewResponse:
    stored = await detector.mark_reviewed(anomaly_id, is_false_positive=body.false_positive)
    return AnomalyReviewResponse(
        anomaly_id=anomaly_id, reviewed=stored, false_positive=body.false_positive
    )


@router.get(
    "/org/{organization_id}/unreviewed",
    response_model=AnomalyListResponse,
    summary="Unreviewed anomalies",
    description="Reviewer queue for an organization, newest first.",
    responses={
        200: {"description": "Unreviewed anomalies"},
        422: {"model": APIError, "description": "Malformed organization id"},
    },
)
async def list_unreviewed_anomalies(
    organization_id: str,
    detector: Annotated[AnomalyDetector, Depends(get_anomaly_detector)],
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> AnomalyListResponse:
    anomalies = await detector.get_unreviewed_anomalies(organization_id, limit=limit)
    return AnomalyListResponse.from_anomalies(anomalies)


@router.post(
    "/org/{organization_id}/sweep",
    response_model=OrganizationSweepResponse,
    summary="Sweep an organization",
    description="Run anomaly detection for every user of an organization.",
    responses={
        200: {"description": "Findings by user"},
        422: {"model": APIError, "description": "Malformed organization id"},
    },
)
async def sweep_organization(
    organization_id: str,
    detector: Annotated[AnomalyDetector, Depends(get_anomaly_detector)],
) -> OrganizationSweepResponse:
    findings = await detector.detect_organization_anomalies(organization_id)
    logger.info(
        "Organization sweep requested",
        organization_id=organization_id,
        users_with_findings=len(findings),
    )
    return OrganizationSweepResponse.from_findings(organization_id, findings)
