"""Response model for the liveness endpoint."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Liveness verdict reported by /health."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Liveness payload, also naming the fact provider the engines read from."""

    status: HealthStatus = Field(..., description="Liveness verdict")
    version: str = Field(..., description="Vantage release")
    environment: str = Field(..., description="Deployment environment name")
    fact_provider: str = Field(..., description="Class name of the active fact provider")
    timestamp: datetime = Field(..., description="When the check ran (UTC)")

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "healthy",
                "version": "0.1.0",
                "environment": "production",
                "fact_provider": "HttpFactProvider",
                "timestamp": "2026-03-18T09:30:00Z",
            }
        }
    }
