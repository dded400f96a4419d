"""Startup checks on Settings.

``validate_or_raise`` runs in the application lifespan before any route is
served: errors abort startup with a ConfigurationError listing every problem,
warnings are logged and startup continues.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from vantage.config.settings import Settings, get_settings
from vantage.utils.exceptions import ConfigurationError

logger = structlog.get_logger("vantage.config")


class ValidationSeverity(str, Enum):
    ERROR = "error"  # blocks startup
    WARNING = "warning"  # logged only


@dataclass
class ValidationResult:
    """One problem found in the settings."""

    field: str
    severity: ValidationSeverity
    message: str
    suggestion: str | None = None

    def __str__(self) -> str:
        text = f"[{self.severity.value.upper()}] {self.field}: {self.message}"
        if self.suggestion:
            text += f"\n  Suggestion: {self.suggestion}"
        return text


def _error(field: str, message: str, suggestion: str | None = None) -> ValidationResult:
    return ValidationResult(field, ValidationSeverity.ERROR, message, suggestion)


def _warning(field: str, message: str, suggestion: str | None = None) -> ValidationResult:
    return ValidationResult(field, ValidationSeverity.WARNING, message, suggestion)


def validate_configuration(settings: Settings | None = None) -> list[ValidationResult]:
    """Run every check and return the problems found, errors and warnings alike."""
    settings = settings or get_settings()
    return [
        *_check_evaluation_limits(settings),
        *_check_fact_service(settings),
        *_check_deployment(settings),
    ]


def validate_or_raise(settings: Settings | None = None) -> None:
    """Raise ConfigurationError if any check fails; log warnings otherwise.

    Raises:
        ConfigurationError: Message lists each error on its own line
    """
    results = validate_configuration(settings)
    errors = [r for r in results if r.severity is ValidationSeverity.ERROR]
    if errors:
        listing = "\n".join(map(str, errors))
        raise ConfigurationError(f"Configuration validation failed:\n{listing}")

    for result in results:
        logger.warning("configuration_warning", field=result.field, message=result.message)


def _check_evaluation_limits(settings: Settings) -> list[ValidationResult]:
    found: list[ValidationResult] = []

    if settings.max_concurrent_evaluations < 1:
        found.append(
            _error(
                "max_concurrent_evaluations",
                f"Concurrency must be positive, got {settings.max_concurrent_evaluations}",
                "The default of 10 suits most organizations",
            )
        )

    timeout = settings.check_timeout_seconds
    if timeout is not None and timeout <= 0:
        found.append(
            _error(
                "check_timeout_seconds",
                "Check timeout must be positive",
                "Leave unset to disable per-check timeouts",
            )
        )

    # off-hours detection resolves local time in this zone
    try:
        ZoneInfo(settings.reference_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        found.append(
            _error(
                "reference_timezone",
                f"Unknown timezone: {settings.reference_timezone}",
                "Use an IANA zone name such as 'UTC' or 'America/New_York'",
            )
        )

    return found


def _check_fact_service(settings: Settings) -> list[ValidationResult]:
    production = settings.ENVIRONMENT == "production"
    url = settings.fact_service_url

    if not url:
        if production:
            return [
                _error(
                    "fact_service_url",
                    "Production requires a remote fact service",
                    "Set FACT_SERVICE_URL",
                )
            ]
        return []

    found: list[ValidationResult] = []
    if not url.startswith(("http://", "https://")):
        found.append(
            _error(
                "fact_service_url",
                "Fact service URL must be http or https",
                "Expected format: https://host[:port]/base",
            )
        )
    if production and settings.fact_service_api_key is None:
        found.append(
            _warning("fact_service_api_key", "Fact service is called without credentials")
        )
    return found


def _check_deployment(settings: Settings) -> list[ValidationResult]:
    if settings.ENVIRONMENT == "production" and settings.DEBUG:
        return [
            _error(
                "DEBUG",
                "Debug mode must be disabled in production",
                "Set DEBUG=false for production",
            )
        ]
    return []


def get_configuration_summary(settings: Settings | None = None) -> dict[str, Any]:
    """Settings snapshot safe to log; secrets are reported only as present or absent."""
    settings = settings or get_settings()

    return {
        "environment": settings.ENVIRONMENT,
        "debug": settings.DEBUG,
        "log_level": settings.log_level,
        "max_concurrent_evaluations": settings.max_concurrent_evaluations,
        "check_timeout_seconds": settings.check_timeout_seconds,
        "reference_timezone": settings.reference_timezone,
        "fact_service_configured": bool(settings.fact_service_url),
        "fact_service_key_configured": settings.fact_service_api_key is not None,
        "metrics_enabled": settings.metrics_enabled,
    }
