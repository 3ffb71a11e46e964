"""
Tests for AsyncHTTPClient status and transport error mapping.

Requests go through httpx.MockTransport; nothing touches the network.
"""

import httpx
import pytest

from mediavault.adapters.exceptions import (
    FetchError,
    NotFoundError,
    PermissionError,
    RateLimitError,
    ServerError,
    TimeoutError,
    TransportError,
)
from mediavault.adapters.http import AsyncHTTPClient


def make_client(handler) -> AsyncHTTPClient:
    return AsyncHTTPClient(
        "https://api.example.com",
        service="Example",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


class TestSuccessfulRequests:
    """Test decoding of successful responses."""

    @pytest.mark.asyncio
    async def test_returns_decoded_json(self):
        """Test a JSON body is decoded."""
        client = make_client(lambda request: httpx.Response(200, json={"ok": True}))

        assert await client.get("/thing") == {"ok": True}
        await client.close()

    @pytest.mark.asyncio
    async def test_empty_body_is_none(self):
        """Test an empty body decodes to None."""
        client = make_client(lambda request: httpx.Response(200))

        assert await client.get("/thing") is None
        await client.close()

    @pytest.mark.asyncio
    async def test_none_params_dropped(self):
        """Test None-valued params are not sent."""
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json=[])

        client = make_client(handler)
        await client.get("/thing", params={"q": "cats", "pageToken": None})

        assert seen == {"q": "cats"}
        await client.close()

    @pytest.mark.asyncio
    async def test_post_sends_form_data(self):
        """Test post() form-encodes data."""
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = request.content
            return httpx.Response(200, json={})

        async with make_client(handler) as client:
            await client.post("/token", data={"grant_type": "client_credentials"})

        assert seen["method"] == "POST"
        assert seen["body"] == b"grant_type=client_credentials"


class TestStatusMapping:
    """Test non-2xx responses map onto the FetchError hierarchy."""

    @pytest.mark.asyncio
    async def test_429_rate_limit(self):
        """Test 429 raises RateLimitError with retry-after."""
        client = make_client(
            lambda request: httpx.Response(429, headers={"retry-after": "12"})
        )

        with pytest.raises(RateLimitError) as exc_info:
            await client.get("/thing")

        assert exc_info.value.retry_after == 12
        assert exc_info.value.message == "Example API error: 429 Too Many Requests"
        await client.close()

    @pytest.mark.asyncio
    async def test_429_without_header(self):
        """Test 429 without retry-after defaults to 60 seconds."""
        client = make_client(lambda request: httpx.Response(429))

        with pytest.raises(RateLimitError) as exc_info:
            await client.get("/thing")

        assert exc_info.value.retry_after == 60
        await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,error_type",
        [
            (404, NotFoundError),
            (403, PermissionError),
            (500, ServerError),
            (503, ServerError),
        ],
    )
    async def test_error_status(self, status_code, error_type):
        """Test error statuses map to their exception types."""
        client = make_client(lambda request: httpx.Response(status_code))

        with pytest.raises(error_type) as exc_info:
            await client.get("/r/pics/hot")

        assert exc_info.value.status_code == status_code
        await client.close()

    @pytest.mark.asyncio
    async def test_other_status_is_fetch_error(self):
        """Test unmapped statuses raise plain FetchError."""
        client = make_client(lambda request: httpx.Response(400))

        with pytest.raises(FetchError) as exc_info:
            await client.get("/thing")

        assert type(exc_info.value) is FetchError
        assert exc_info.value.status_code == 400
        await client.close()


class TestTransportFailures:
    """Test failures that produce no usable response."""

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """Test a non-JSON body raises TransportError."""
        client = make_client(lambda request: httpx.Response(200, content=b"<html>"))

        with pytest.raises(TransportError) as exc_info:
            await client.get("/thing")

        assert exc_info.value.message == "Invalid response format from Example API"
        await client.close()

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Test connection failures raise TransportError."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(TransportError) as exc_info:
            await client.get("/thing")

        assert exc_info.value.message == "Failed to reach Example API"
        assert exc_info.value.url == "https://api.example.com/thing"
        await client.close()

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test timeouts raise TimeoutError."""

        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler)

        with pytest.raises(TimeoutError) as exc_info:
            await client.get("/thing")

        assert exc_info.value.status_code == 408
        assert exc_info.value.timeout_seconds == 5
        await client.close()
