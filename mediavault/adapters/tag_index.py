"""
Tag index (imageboard) listing adapter.

The service pages by zero-based ``pid`` and returns a bare JSON array
with no total count. A full page is taken to mean another page exists,
so an exactly-full final page costs one extra, empty fetch.
"""

from typing import Any, Optional

from pydantic import ValidationError as SchemaError

from mediavault.adapters.base import ContentAdapter
from mediavault.adapters.exceptions import TransportError
from mediavault.adapters.http import AsyncHTTPClient
from mediavault.models.cursor import Cursor, FetchResult, PageCursor
from mediavault.models.media import SourceType
from mediavault.models.raw import TagPost
from mediavault.models.session import TagCriteria
from mediavault.utils.logger import get_logger

logger = get_logger(__name__)

TAG_INDEX_API_URL = "https://api.rule34.xxx"
PAGE_SIZE = 100


class TagIndexAdapter(ContentAdapter):
    """
    Adapter for the tag-indexed imageboard.

    Attributes:
        page_size: Posts requested per page; a page this long implies more
    """

    source = SourceType.TAG_INDEX

    def __init__(
        self,
        api_key: Optional[str] = None,
        user_id: Optional[str] = None,
        http: Optional[AsyncHTTPClient] = None,
        page_size: int = PAGE_SIZE,
    ) -> None:
        super().__init__(http or AsyncHTTPClient(TAG_INDEX_API_URL, service="Tag index"))
        self.api_key = api_key
        self.user_id = user_id
        self.page_size = page_size

    def build_params(self, criteria: TagCriteria, pid: int) -> dict[str, Any]:
        return {
            "page": "dapi",
            "s": "post",
            "q": "index",
            "json": 1,
            "limit": self.page_size,
            "tags": criteria.tags.strip(),
            "pid": pid,
            "api_key": self.api_key,
            "user_id": self.user_id,
        }

    async def fetch_page(self, criteria: TagCriteria, cursor: Cursor) -> FetchResult[TagPost]:
        """
        Fetch page ``cursor.index`` (page 0 when cursor is None).

        Returns:
            FetchResult whose next_cursor is PageCursor(pid + 1) after a full
            page and None after a short one
        """
        criteria = self._require(criteria, TagCriteria, "criteria")
        page = self._optional_cursor(cursor, PageCursor)
        pid = page.index if page is not None else 0

        logger.debug("tag_index_fetch_started", tags=criteria.tags, pid=pid)

        data = await self._http.get("/index.php", params=self.build_params(criteria, pid))

        # The service answers an empty body instead of [] past the last page
        if data is None:
            data = []
        if not isinstance(data, list):
            raise TransportError("Invalid response format from Tag index API")

        posts = []
        for entry in data:
            try:
                posts.append(TagPost.model_validate(entry))
            except SchemaError as e:
                logger.warning(
                    "tag_post_skipped",
                    post_id=entry.get("id") if isinstance(entry, dict) else None,
                    error_count=e.error_count(),
                )

        # Exhaustion is judged on the raw page length, before skipping
        next_cursor = PageCursor(index=pid + 1) if len(data) >= self.page_size else None

        logger.info(
            "tag_index_fetch_completed",
            tags=criteria.tags,
            pid=pid,
            results_count=len(posts),
            has_more=next_cursor is not None,
        )

        return FetchResult[TagPost](items=posts, next_cursor=next_cursor)
