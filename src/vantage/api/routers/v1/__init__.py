"""API v1 routers."""

from fastapi import APIRouter

from .anomalies import router as anomalies_router
from .organizations import router as organizations_router
from .recommendations import router as recommendations_router
from .risk import router as risk_router

# Create v1 router that includes all v1 endpoints
router = APIRouter(prefix="/v1")

router.include_router(risk_router)
router.include_router(anomalies_router)
router.include_router(recommendations_router)
router.include_router(organizations_router)

__all__ = [
    "router",
    "anomalies_router",
    "organizations_router",
    "recommendations_router",
    "risk_router",
]
