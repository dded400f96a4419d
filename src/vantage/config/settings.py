"""Application settings loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class EvaluationConfig(BaseModel):
    """Runtime limits for risk, anomaly and recommendation evaluation.

    Controls how much concurrent work a single batch may fan out and how long
    an individual behavioral check may run before it is abandoned.
    """

    max_concurrent_evaluations: int = Field(default=10, ge=1, le=200)
    """Per-user evaluations in flight during organization-wide batches."""

    check_timeout_seconds: float | None = Field(default=10.0, gt=0)
    """Per-check timeout for anomaly detection. None disables the timeout."""

    reference_timezone: str = "UTC"
    """IANA zone used for off-hours and weekend evaluation."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Configuration
    ENVIRONMENT: Literal["development", "test", "staging", "production"] = "development"
    DEBUG: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Evaluation
    max_concurrent_evaluations: int = 10
    check_timeout_seconds: float | None = 10.0
    reference_timezone: str = "UTC"

    # Remote fact service (unset means the in-memory provider is used)
    fact_service_url: str | None = None
    fact_service_api_key: SecretStr | None = None
    fact_service_timeout_seconds: float = 30.0
    fact_service_max_retries: int = 3

    # Observability
    metrics_enabled: bool = True

    @property
    def evaluation(self) -> EvaluationConfig:
        """Get the evaluation limits as a validated config model."""
        return EvaluationConfig(
            max_concurrent_evaluations=self.max_concurrent_evaluations,
            check_timeout_seconds=self.check_timeout_seconds,
            reference_timezone=self.reference_timezone,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
