"""
Async HTTP layer shared by the content adapters.

Wraps httpx.AsyncClient and maps every transport failure and non-2xx
response onto the FetchError hierarchy. Requests are never retried here:
a failed page is surfaced to the session and the user retries manually.
"""

from typing import Any, Literal, Optional

import httpx

from mediavault.adapters.exceptions import (
    FetchError,
    NotFoundError,
    PermissionError,
    RateLimitError,
    ServerError,
    TimeoutError,
    TransportError,
)
from mediavault.utils.logger import get_logger

logger = get_logger(__name__)

HttpMethod = Literal["GET", "POST"]

DEFAULT_TIMEOUT = 30.0


def _error_message(response: httpx.Response, service: str) -> str:
    """Build a readable message for a failed response."""
    reason = response.reason_phrase or "error"
    return f"{service} API error: {response.status_code} {reason}"


def _raise_for_status(response: httpx.Response, service: str) -> None:
    """
    Raise the FetchError subclass matching an error status code.

    Args:
        response: The HTTP response to check
        service: Human readable service name used in messages

    Raises:
        RateLimitError: For HTTP 429
        NotFoundError: For HTTP 404
        PermissionError: For HTTP 403
        ServerError: For HTTP 5xx
        FetchError: For any other non-2xx status
    """
    if response.is_success:
        return

    status_code = response.status_code
    message = _error_message(response, service)

    if status_code == 429:
        retry_after = response.headers.get("retry-after", "60")
        try:
            seconds = int(float(retry_after))
        except ValueError:
            seconds = 60
        raise RateLimitError(retry_after=seconds, message=message)
    if status_code == 404:
        raise NotFoundError("listing", str(response.request.url.path), message=message)
    if status_code == 403:
        raise PermissionError(message)
    if status_code >= 500:
        raise ServerError(message, status_code=status_code)
    raise FetchError(message, status_code=status_code)


class AsyncHTTPClient:
    """
    Thin async client bound to one upstream service.

    Attributes:
        base_url: Base URL every request path is appended to
        service: Service name used in error messages and logs
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        service: str,
        timeout: float = DEFAULT_TIMEOUT,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Base URL for all requests
            service: Service name for messages
            timeout: Request timeout in seconds
            headers: Default headers sent with every request
            transport: Custom transport (httpx.MockTransport in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.service = service
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncHTTPClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def request(
        self,
        method: HttpMethod,
        path: str,
        params: Optional[dict[str, Any]] = None,
        data: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        auth: Optional[httpx.Auth] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        ``None`` valued params are dropped. An empty body decodes to None.

        Raises:
            TransportError: Connection failure or a body that is not JSON
            TimeoutError: Request exceeded ``timeout``
            FetchError: Any non-2xx response (see _raise_for_status)
        """
        url = f"{self.base_url}{path}"

        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                data=data,
                headers=headers,
                auth=auth,
            )
        except httpx.TimeoutException as e:
            logger.warning("http_request_timeout", service=self.service, url=url)
            raise TimeoutError(
                f"{self.service} request timed out", timeout_seconds=self.timeout
            ) from e
        except httpx.HTTPError as e:
            logger.warning(
                "http_request_failed",
                service=self.service,
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransportError(f"Failed to reach {self.service} API", url=url) from e

        _raise_for_status(response, self.service)

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"Invalid response format from {self.service} API", url=url
            ) from e

    async def get(self, path: str, params: Optional[dict[str, Any]] = None, **kwargs: Any) -> Any:
        """Send a GET request."""
        return await self.request("GET", path, params=params, **kwargs)

    async def post(self, path: str, data: Optional[dict[str, Any]] = None, **kwargs: Any) -> Any:
        """Send a form-encoded POST request."""
        return await self.request("POST", path, data=data, **kwargs)
