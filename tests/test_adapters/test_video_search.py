"""
Tests for the video search adapter.

Tests cover:
- Search plus details enrichment, including partial enrichment
- Page token pagination
- Validation and API key errors
- Duration and view count formatting helpers
"""

import httpx
import pytest

from mediavault.adapters.exceptions import (
    AuthenticationError,
    PermissionError,
    ValidationError,
)
from mediavault.adapters.http import AsyncHTTPClient
from mediavault.adapters.video_search import (
    VIDEO_API_URL,
    VideoSearchAdapter,
    format_duration,
    format_view_count,
)
from mediavault.models.cursor import OpaqueCursor
from mediavault.models.session import VideoCriteria


def search_body(ids, next_token=None):
    body = {
        "items": [
            {
                "id": {"kind": "youtube#video", "videoId": video_id},
                "snippet": {
                    "title": f"Video {video_id}",
                    "channelTitle": "Channel",
                    "publishedAt": "2024-01-02T03:04:05Z",
                    "thumbnails": {"high": {"url": f"https://img.example/{video_id}.jpg"}},
                },
            }
            for video_id in ids
        ]
    }
    if next_token:
        body["nextPageToken"] = next_token
    return body


def details_body(durations):
    return {
        "items": [
            {
                "id": video_id,
                "contentDetails": {"duration": duration},
                "statistics": {"viewCount": "1500"},
            }
            for video_id, duration in durations.items()
        ]
    }


def make_adapter(handler, api_key="test_key"):
    http = AsyncHTTPClient(
        VIDEO_API_URL, service="Video search", transport=httpx.MockTransport(handler)
    )
    return VideoSearchAdapter(api_key, http=http)


class TestVideoSearchAdapter:
    """Test suite for VideoSearchAdapter."""

    @pytest.mark.asyncio
    async def test_enriches_results(self):
        """Test durations and view counts are merged from the details call."""

        def handler(request):
            if request.url.path.endswith("/search"):
                return httpx.Response(200, json=search_body(["v1", "v2"], next_token="NEXT"))
            return httpx.Response(200, json=details_body({"v1": "PT4M5S", "v2": "PT1H"}))

        adapter = make_adapter(handler)
        page = await adapter.fetch_page(VideoCriteria(query="lofi"), None)

        assert [hit.id for hit in page.items] == ["v1", "v2"]
        assert page.items[0].duration == "PT4M5S"
        assert page.items[0].view_count == "1500"
        assert page.items[0].thumbnail == "https://img.example/v1.jpg"
        assert page.next_cursor == OpaqueCursor(token="NEXT")

    @pytest.mark.asyncio
    async def test_partial_enrichment(self):
        """Test ids missing from the details response keep placeholders."""

        def handler(request):
            if request.url.path.endswith("/search"):
                return httpx.Response(200, json=search_body(["v1", "v2"]))
            return httpx.Response(200, json=details_body({"v1": "PT30S"}))

        adapter = make_adapter(handler)
        page = await adapter.fetch_page(VideoCriteria(query="lofi"), None)

        assert len(page.items) == 2
        assert page.items[1].duration == "PT0S"
        assert page.items[1].view_count == "0"
        assert page.next_cursor is None

    @pytest.mark.asyncio
    async def test_details_failure_keeps_hits(self):
        """Test a failed details call still returns the search hits."""

        def handler(request):
            if request.url.path.endswith("/search"):
                return httpx.Response(200, json=search_body(["v1"]))
            return httpx.Response(500)

        adapter = make_adapter(handler)
        page = await adapter.fetch_page(VideoCriteria(query="lofi"), None)

        assert [hit.id for hit in page.items] == ["v1"]
        assert page.items[0].duration == "PT0S"

    @pytest.mark.asyncio
    async def test_page_token_and_params(self):
        """Test the cursor token and search parameters are sent."""
        seen = {}

        def handler(request):
            if request.url.path.endswith("/search"):
                seen.update(request.url.params)
                return httpx.Response(200, json=search_body([]))
            return httpx.Response(200, json={"items": []})

        adapter = make_adapter(handler)
        page = await adapter.fetch_page(VideoCriteria(query=" lofi "), OpaqueCursor(token="TOKEN2"))

        assert seen["pageToken"] == "TOKEN2"
        assert seen["q"] == "lofi"
        assert seen["type"] == "video"
        assert seen["part"] == "snippet"
        assert seen["maxResults"] == "25"
        assert seen["key"] == "test_key"
        assert page.items == []
        assert page.next_cursor is None

    @pytest.mark.asyncio
    async def test_empty_query(self):
        """Test empty search text is rejected before any request."""
        adapter = make_adapter(lambda request: httpx.Response(200, json=search_body([])))

        with pytest.raises(ValidationError) as exc_info:
            await adapter.fetch_page(VideoCriteria(query="   "), None)

        assert exc_info.value.message == "search_query: Search query is required"

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        """Test a missing key is a fatal authentication error."""
        adapter = make_adapter(lambda request: httpx.Response(200), api_key=None)

        with pytest.raises(AuthenticationError) as exc_info:
            await adapter.fetch_page(VideoCriteria(query="lofi"), None)

        assert exc_info.value.fatal is True

    @pytest.mark.asyncio
    async def test_forbidden_key(self):
        """Test a 403 explains the key or quota problem."""
        adapter = make_adapter(lambda request: httpx.Response(403))

        with pytest.raises(PermissionError) as exc_info:
            await adapter.fetch_page(VideoCriteria(query="lofi"), None)

        assert exc_info.value.message == "Invalid video search API key or quota exceeded"


class TestFormatting:
    """Test duration and view count helpers."""

    @pytest.mark.parametrize(
        "duration,expected",
        [
            ("PT4M5S", "4:05"),
            ("PT1H2M3S", "1:02:03"),
            ("PT45S", "0:45"),
            ("garbage", "0:00"),
        ],
    )
    def test_format_duration(self, duration, expected):
        """Test ISO durations render as clock strings."""
        assert format_duration(duration) == expected

    @pytest.mark.parametrize(
        "views,expected",
        [
            ("1534000", "1.5M views"),
            ("2500", "2.5K views"),
            ("999", "999 views"),
            ("n/a", "0 views"),
        ],
    )
    def test_format_view_count(self, views, expected):
        """Test view counts render compactly."""
        assert format_view_count(views) == expected
