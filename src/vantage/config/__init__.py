"""Configuration module for Vantage."""

from vantage.config.settings import EvaluationConfig, Settings, get_settings

__all__ = ["EvaluationConfig", "Settings", "get_settings"]
