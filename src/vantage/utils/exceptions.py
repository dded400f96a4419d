"""Base error types shared by every Vantage package."""


class VantageError(Exception):
    """Root of the Vantage error hierarchy; the API maps subclasses to status codes."""


class ConfigurationError(VantageError):
    """Settings failed validation at startup."""
