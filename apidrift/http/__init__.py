"""HTTP transport - authenticated API calls."""

from .client import AccessTokenHolder, ApiClient, ApiResponse, TransportError, construct_url

__all__ = ["AccessTokenHolder", "ApiClient", "ApiResponse", "TransportError", "construct_url"]
