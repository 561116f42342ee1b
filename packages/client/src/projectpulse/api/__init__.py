"""REST API access."""

from projectpulse.api.client import ApiClient, ApiError, UnauthorizedError

__all__ = ["ApiClient", "ApiError", "UnauthorizedError"]
