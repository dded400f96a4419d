"""Error body returned by every Vantage endpoint on failure."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Values of APIError.error_code."""

    INVALID_IDENTIFIER = "invalid_identifier"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    DATA_UNAVAILABLE = "data_unavailable"
    PERSISTENCE_FAILED = "persistence_failed"
    CONFIGURATION_ERROR = "configuration_error"
    INTERNAL_ERROR = "internal_error"


class APIError(BaseModel):
    """JSON error envelope; request_id matches the X-Request-ID header."""

    error_code: str = Field(..., description="One of the ErrorCode values")
    message: str = Field(..., description="Short explanation safe to show a client")
    details: dict[str, Any] | None = Field(
        default=None, description="Structured context such as the offending identifier"
    )
    request_id: str = Field(..., description="UUIDv7 of the failed request")
    timestamp: datetime = Field(..., description="When the failure was reported (UTC)")

    model_config = {
        "json_schema_extra": {
            "example": {
                "error_code": "not_found",
                "message": "RecordNotFoundError: Anomaly not found: a-404",
                "details": {"kind": "anomaly", "record_id": "a-404"},
                "request_id": "019478f2-1234-7000-8000-abcdef123456",
                "timestamp": "2026-03-18T09:30:00Z",
            }
        }
    }
