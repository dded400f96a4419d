"""Utility modules for Vantage."""

from vantage.utils.exceptions import ConfigurationError, VantageError

__all__ = [
    "VantageError",
    "ConfigurationError",
]
