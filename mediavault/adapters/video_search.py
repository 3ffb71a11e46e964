"""
Video search listing adapter.

Each page takes two round-trips: the search call, then one batched
details call to enrich every hit with its duration and view count. A
hit missing from the details response, or a details call that fails
outright, keeps the placeholder values instead of failing the page.
"""

from typing import Any, Optional

from mediavault.adapters.base import ContentAdapter, require_query
from mediavault.adapters.exceptions import (
    AuthenticationError,
    FetchError,
    PermissionError,
    TransportError,
)
from mediavault.adapters.http import AsyncHTTPClient
from mediavault.media.normalizer import parse_iso_duration
from mediavault.models.cursor import Cursor, FetchResult, OpaqueCursor
from mediavault.models.media import SourceType
from mediavault.models.raw import VideoSearchResult
from mediavault.models.session import VideoCriteria
from mediavault.utils.logger import get_logger

logger = get_logger(__name__)

VIDEO_API_URL = "https://www.googleapis.com/youtube/v3"
DEFAULT_MAX_RESULTS = 25

PLACEHOLDER_DURATION = "PT0S"
PLACEHOLDER_VIEWS = "0"


def format_duration(duration: str) -> str:
    """
    Render an ISO-8601 duration as a clock string.

    Example:
        >>> format_duration("PT1H2M3S")
        '1:02:03'
        >>> format_duration("PT4M5S")
        '4:05'
    """
    total = parse_iso_duration(duration)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_view_count(view_count: str) -> str:
    """
    Render a view count compactly.

    Example:
        >>> format_view_count("1534000")
        '1.5M views'
    """
    try:
        count = int(view_count)
    except (TypeError, ValueError):
        count = 0
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M views"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K views"
    return f"{count} views"


def _search_hit(item: dict) -> Optional[VideoSearchResult]:
    video_id = (item.get("id") or {}).get("videoId")
    if not video_id:
        return None
    snippet = item.get("snippet") or {}
    thumbnails = snippet.get("thumbnails") or {}
    thumbnail = (thumbnails.get("high") or thumbnails.get("default") or {}).get("url", "")
    return VideoSearchResult(
        id=video_id,
        title=snippet.get("title", ""),
        channel_title=snippet.get("channelTitle", ""),
        thumbnail=thumbnail,
        published_at=snippet.get("publishedAt", ""),
        description=snippet.get("description", ""),
    )


class VideoSearchAdapter(ContentAdapter):
    """Adapter for keyword video search with a details enrichment batch."""

    source = SourceType.VIDEO_SEARCH

    def __init__(
        self,
        api_key: Optional[str],
        http: Optional[AsyncHTTPClient] = None,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> None:
        super().__init__(http or AsyncHTTPClient(VIDEO_API_URL, service="Video search"))
        self.api_key = api_key
        self.max_results = max_results

    async def _search(self, query: str, page_token: Optional[str]) -> dict[str, Any]:
        try:
            data = await self._http.get(
                "/search",
                params={
                    "part": "snippet",
                    "type": "video",
                    "maxResults": self.max_results,
                    "q": query,
                    "key": self.api_key,
                    "pageToken": page_token,
                },
            )
        except PermissionError as e:
            raise PermissionError("Invalid video search API key or quota exceeded") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise TransportError("Invalid response format from Video search API")
        return data

    async def _details(self, video_ids: list[str]) -> dict[str, dict]:
        """Fetch contentDetails/statistics keyed by id; failures yield {}."""
        try:
            data = await self._http.get(
                "/videos",
                params={
                    "part": "contentDetails,statistics",
                    "id": ",".join(video_ids),
                    "key": self.api_key,
                },
            )
        except FetchError as e:
            logger.warning(
                "video_details_failed",
                video_count=len(video_ids),
                error=e.message,
            )
            return {}

        items = data.get("items", []) if isinstance(data, dict) else []
        return {item["id"]: item for item in items if isinstance(item, dict) and "id" in item}

    async def fetch_page(
        self, criteria: VideoCriteria, cursor: Cursor
    ) -> FetchResult[VideoSearchResult]:
        """
        Search videos and enrich the page with durations and view counts.

        Args:
            criteria: Video criteria; ``query`` is the search text
            cursor: OpaqueCursor holding ``pageToken``, or None

        Returns:
            FetchResult of VideoSearchResult; next_cursor from ``nextPageToken``
        """
        criteria = self._require(criteria, VideoCriteria, "criteria")
        page = self._optional_cursor(cursor, OpaqueCursor)
        query = require_query(criteria.query)

        if not self.api_key:
            raise AuthenticationError("Video search API key is required", fatal=True)

        data = await self._search(query, page.token if page else None)
        hits = [
            hit
            for hit in (_search_hit(item) for item in data.get("items") or [])
            if hit is not None
        ]

        if not hits:
            logger.info("video_search_empty", query=query)
            return FetchResult[VideoSearchResult](items=[], next_cursor=None)

        details = await self._details([hit.id for hit in hits])

        results = []
        missing = 0
        for hit in hits:
            detail = details.get(hit.id)
            if detail is None:
                missing += 1
                results.append(hit)
                continue
            results.append(
                hit.model_copy(
                    update={
                        "duration": (detail.get("contentDetails") or {}).get(
                            "duration", PLACEHOLDER_DURATION
                        ),
                        "view_count": (detail.get("statistics") or {}).get(
                            "viewCount", PLACEHOLDER_VIEWS
                        ),
                    }
                )
            )

        if missing:
            logger.debug("video_details_partial", missing=missing, total=len(hits))

        next_token = data.get("nextPageToken")

        logger.info(
            "video_search_completed",
            query=query,
            results_count=len(results),
            has_more=bool(next_token),
        )

        return FetchResult[VideoSearchResult](
            items=results,
            next_cursor=OpaqueCursor(token=next_token) if next_token else None,
        )
