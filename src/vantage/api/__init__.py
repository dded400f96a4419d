"""FastAPI reference service over the decision engines."""

from vantage.api.app import create_app

__all__ = ["create_app"]
