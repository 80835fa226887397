"""
REST API client package.

Talks to the backend that owns persistence for the web front-end, and
feeds the cost engine through services.cost_sources.ApiCostSource.
"""

from .session import AuthSession
from .client import ApiClient

__all__ = ["AuthSession", "ApiClient"]
