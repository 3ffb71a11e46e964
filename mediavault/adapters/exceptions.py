"""
Exceptions raised across the content adapter boundary.

Every adapter failure surfaces as a FetchError subclass. The aggregator
catches FetchError, writes its message into the affected session and
leaves every other session untouched.
"""

from typing import Optional


class FetchError(Exception):
    """
    Base exception for all content adapter errors.

    Use this for catching any failure coming out of an adapter or the
    credential cache.

    Attributes:
        message: Human readable error description
        status_code: HTTP status code when the failure came from a response
    """

    retryable: bool = True

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        """
        Initialize FetchError.

        Args:
            message: Error description
            status_code: Optional HTTP status code from the upstream service
        """
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(FetchError):
    """
    Raised when a query is malformed.

    This is raised synchronously before any network call, e.g. for a
    subreddit name with characters outside ``[A-Za-z0-9_+-]`` or an empty
    search string. Retrying the same query cannot succeed.

    Example:
        >>> raise ValidationError("Invalid subreddit name", field="subreddit")
    """

    retryable = False

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        """
        Initialize ValidationError.

        Args:
            message: Error description
            field: Optional name of the criteria field that failed validation
        """
        self.field = field

        if field:
            message = f"{field}: {message}"

        super().__init__(message, status_code=422)


class AuthenticationError(FetchError):
    """
    Raised when the client-credentials exchange fails.

    ``fatal`` distinguishes "cannot authenticate at all" (rejected or
    missing credentials) from a single exchange that failed in transit.

    Example:
        >>> raise AuthenticationError("Reddit rejected the client credentials", fatal=True)
    """

    def __init__(
        self,
        message: str = "Reddit authentication failed",
        fatal: bool = False,
    ) -> None:
        """
        Initialize AuthenticationError.

        Args:
            message: Error description (default: "Reddit authentication failed")
            fatal: True when retrying with the same credentials cannot succeed
        """
        self.fatal = fatal
        super().__init__(message, status_code=401)

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return not self.fatal


class TransportError(FetchError):
    """
    Raised when a request never produced a usable response.

    Covers connection failures and bodies that are not the JSON shape the
    listing protocol promises.
    """

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        self.url = url
        super().__init__(message)


class TimeoutError(FetchError):
    """
    Raised when an upstream request times out.

    Example:
        >>> raise TimeoutError("Listing request timed out", timeout_seconds=30)
    """

    def __init__(
        self,
        message: str = "Upstream request timed out",
        timeout_seconds: float = 30,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{message} ({timeout_seconds}s)", status_code=408)


class RateLimitError(FetchError):
    """
    Raised when an upstream service answers 429.

    Attributes:
        retry_after: Seconds suggested by the service before retrying
    """

    def __init__(
        self,
        retry_after: int = 60,
        message: str = "Upstream rate limit exceeded",
    ) -> None:
        self.retry_after = retry_after
        super().__init__(message, status_code=429)

    def __str__(self) -> str:
        """Return formatted error message with retry information."""
        return f"{self.message} (retry after {self.retry_after}s)"


class NotFoundError(FetchError):
    """
    Raised when a listing does not exist.

    Example:
        >>> raise NotFoundError("subreddit", "doesnotexist")
    """

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        message: Optional[str] = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id

        if message is None:
            message = f"{resource_type.capitalize()} '{resource_id}' not found"

        super().__init__(message, status_code=404)


class PermissionError(FetchError):
    """
    Raised when the upstream refuses access (403).

    For the video service this usually means an invalid API key or an
    exhausted quota; for Reddit a private or quarantined subreddit.
    """

    def __init__(self, message: str = "Access to upstream resource forbidden") -> None:
        super().__init__(message, status_code=403)


class ServerError(FetchError):
    """
    Raised when an upstream service returns a 5xx status.

    Example:
        >>> raise ServerError("Reddit API returned 503", status_code=503)
    """

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message, status_code=status_code)
