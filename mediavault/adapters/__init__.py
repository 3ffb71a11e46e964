"""
Content adapter layer.

This package provides the pieces shared by every listing adapter:
- ContentAdapter: the ``fetch_page(criteria, cursor)`` contract
- AsyncHTTPClient: httpx wrapper with status-to-exception mapping
- FetchError hierarchy
- SlidingWindowRateLimiter

Concrete adapters live in their own modules (``mediavault.adapters.reddit``,
``mediavault.adapters.tag_index``, ``mediavault.adapters.video_search``).
"""

from mediavault.adapters.base import ContentAdapter, require_query
from mediavault.adapters.exceptions import (
    AuthenticationError,
    FetchError,
    NotFoundError,
    PermissionError,
    RateLimitError,
    ServerError,
    TimeoutError,
    TransportError,
    ValidationError,
)
from mediavault.adapters.http import AsyncHTTPClient
from mediavault.adapters.rate_limiter import SlidingWindowRateLimiter

__all__ = [
    # Contract
    "ContentAdapter",
    "require_query",
    # HTTP
    "AsyncHTTPClient",
    # Exceptions
    "FetchError",
    "ValidationError",
    "AuthenticationError",
    "TransportError",
    "TimeoutError",
    "RateLimitError",
    "NotFoundError",
    "PermissionError",
    "ServerError",
    # Rate limiting
    "SlidingWindowRateLimiter",
]
