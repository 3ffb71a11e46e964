"""
Reddit listing adapter.

Three query modes share one pagination semantic, the opaque ``after``
token: combined-subreddit browse (``/r/a+b/hot``), subreddit-scoped search
and global search. A listing whose ``after`` is null is exhausted.
Requests use an application-only OAuth2 token from CredentialCache and
pass through a shared rate limiter.
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError as SchemaError

from mediavault.adapters.base import ContentAdapter, require_query
from mediavault.adapters.exceptions import (
    AuthenticationError,
    FetchError,
    TransportError,
    ValidationError,
)
from mediavault.adapters.http import AsyncHTTPClient
from mediavault.adapters.rate_limiter import SlidingWindowRateLimiter
from mediavault.auth.credentials import CredentialCache
from mediavault.media.normalizer import is_media_post
from mediavault.models.cursor import Cursor, FetchResult, OpaqueCursor
from mediavault.models.media import SourceType
from mediavault.models.raw import RedditPost
from mediavault.models.session import RedditCriteria, RedditSort, SearchSort
from mediavault.models.subreddit import SubredditInfo, SubredditSearchResult
from mediavault.utils.logger import get_logger

logger = get_logger(__name__)

REDDIT_API_URL = "https://oauth.reddit.com"
DEFAULT_USER_AGENT = "MediaVault/1.0"
PAGE_SIZE = 100
SUBREDDIT_SEARCH_PAGE_SIZE = 25

_NAME = re.compile(r"^[A-Za-z0-9_-]+$")
_COMBINED_NAME = re.compile(r"^[A-Za-z0-9_+-]+$")
_PREFIX = re.compile(r"^/?r/", re.IGNORECASE)


def _strip_prefix(name: str) -> str:
    return _PREFIX.sub("", name.strip())


def clean_subreddit_input(raw: Optional[str]) -> str:
    """
    Validate user subreddit input and return the ``+``-joined path segment.

    A comma-separated input is split into names that are each trimmed and
    validated against ``[A-Za-z0-9_-]+``; the whole input is rejected if
    any name is invalid or none remain. A single value may already be
    ``+``-joined.

    Raises:
        ValidationError: If the input is empty or contains an invalid name

    Example:
        >>> clean_subreddit_input("r/pics, aww ,EarthPorn")
        'pics+aww+EarthPorn'
    """
    cleaned = _strip_prefix(raw or "")

    if "," in cleaned:
        names = [_strip_prefix(part) for part in cleaned.split(",")]
        names = [name for name in names if name]
        if not names:
            raise ValidationError("No valid subreddit names found", field="subreddit")
        invalid = [name for name in names if not _NAME.match(name)]
        if invalid:
            raise ValidationError(
                f"Invalid subreddit name(s): {', '.join(invalid)}", field="subreddit"
            )
        return "+".join(names)

    if not cleaned:
        raise ValidationError("Subreddit name is required", field="subreddit")

    if not _COMBINED_NAME.match(cleaned):
        raise ValidationError(
            "Invalid subreddit name. Only letters, numbers, underscores, "
            "hyphens, and plus signs are allowed.",
            field="subreddit",
        )
    return cleaned


def _listing_children(data: Any) -> tuple[list[dict], Optional[str]]:
    """Unpack the ``{data: {children, after}}`` envelope."""
    listing = data.get("data") if isinstance(data, dict) else None
    if not isinstance(listing, dict) or not isinstance(listing.get("children"), list):
        raise TransportError("Invalid response format from Reddit API")
    children = [
        child.get("data")
        for child in listing["children"]
        if isinstance(child, dict) and isinstance(child.get("data"), dict)
    ]
    return children, listing.get("after") or None


class RedditAdapter(ContentAdapter):
    """
    Adapter for Reddit listings and searches.

    Example:
        >>> adapter = RedditAdapter(CredentialCache(client_id, secret, user_agent))
        >>> page = await adapter.fetch_page(RedditCriteria(subreddit="pics"), None)
        >>> page.next_cursor
        OpaqueCursor(token='t3_abc123')
    """

    source = SourceType.REDDIT

    def __init__(
        self,
        credentials: CredentialCache,
        user_agent: str = DEFAULT_USER_AGENT,
        http: Optional[AsyncHTTPClient] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
    ) -> None:
        super().__init__(http or AsyncHTTPClient(REDDIT_API_URL, service="Reddit"))
        self.credentials = credentials
        self.user_agent = user_agent
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter(100, 60)

    def build_request(self, criteria: RedditCriteria) -> tuple[str, dict[str, Any]]:
        """
        Resolve criteria to a request path and query parameters.

        Runs every validation rule, so a malformed query fails here before
        any network call.

        Raises:
            ValidationError: For bad subreddit names, empty search text or
                an unsupported sort
        """
        params: dict[str, Any] = {
            "limit": PAGE_SIZE,
            "raw_json": 1,
            "include_over_18": "on",
        }

        if criteria.is_search_mode:
            params["q"] = require_query(criteria.search_query)
            if criteria.subreddit and criteria.subreddit.strip():
                names = clean_subreddit_input(criteria.subreddit)
                params.update(restrict_sr="on", sort="new")
                return f"/r/{names}/search", params

            try:
                sort = SearchSort(criteria.sort)
            except ValueError:
                sort = SearchSort.RELEVANCE
            params.update(sort=sort.value, type="link")
            return "/search", params

        names = clean_subreddit_input(criteria.subreddit)
        try:
            sort = RedditSort(criteria.sort)
        except ValueError:
            raise ValidationError(f"Unsupported sort '{criteria.sort}'", field="sort")
        return f"/r/{names}/{sort.value}", params

    async def close(self) -> None:
        await super().close()
        await self.credentials.close()

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        token = await self.credentials.get_token()
        await self.rate_limiter.acquire()

        try:
            return await self._http.get(
                path,
                params=params,
                headers={
                    "Authorization": f"Bearer {token}",
                    "User-Agent": self.user_agent,
                },
            )
        except FetchError as e:
            if e.status_code == 401:
                # Token revoked server-side; the next request exchanges again
                self.credentials.invalidate()
                raise AuthenticationError("Reddit rejected the access token") from e
            raise

    async def fetch_page(
        self, criteria: RedditCriteria, cursor: Cursor
    ) -> FetchResult[RedditPost]:
        """
        Fetch one listing page and keep only media posts.

        Args:
            criteria: Reddit query
            cursor: OpaqueCursor holding the ``after`` token, or None

        Returns:
            FetchResult of RedditPost; next_cursor is None when ``after`` is null
        """
        criteria = self._require(criteria, RedditCriteria, "criteria")
        after = self._optional_cursor(cursor, OpaqueCursor)

        path, params = self.build_request(criteria)
        if after is not None:
            params["after"] = after.token

        logger.debug("reddit_fetch_started", path=path, after=params.get("after"))

        data = await self._get(path, params)
        children, next_after = _listing_children(data)

        posts = []
        for child in children:
            try:
                post = RedditPost.model_validate(child)
            except SchemaError as e:
                logger.warning(
                    "reddit_post_skipped",
                    post_id=child.get("id"),
                    error_count=e.error_count(),
                )
                continue
            if is_media_post(post):
                posts.append(post)

        logger.info(
            "reddit_fetch_completed",
            path=path,
            fetched=len(children),
            media_posts=len(posts),
            has_more=next_after is not None,
        )

        return FetchResult[RedditPost](
            items=posts,
            next_cursor=OpaqueCursor(token=next_after) if next_after else None,
        )

    async def fetch_subreddit_info(self, subreddit: str) -> Optional[SubredditInfo]:
        """
        Fetch header details for one subreddit.

        Failures are logged and reported as None; a missing header never
        fails the browse session itself.
        """
        try:
            name = clean_subreddit_input(subreddit)
            data = await self._get(f"/r/{name}/about", {"raw_json": 1})
        except FetchError as e:
            logger.warning("subreddit_info_failed", subreddit=subreddit, error=e.message)
            return None

        about = data.get("data") if isinstance(data, dict) else None
        if not isinstance(about, dict):
            return None

        icon = about.get("community_icon") or about.get("icon_img")
        return SubredditInfo(
            name=about.get("display_name", name),
            icon=icon.split("?")[0] if icon else None,
            subscribers=about.get("subscribers"),
            description=about.get("public_description"),
        )

    async def search_subreddits(
        self, query: str, cursor: Cursor = None
    ) -> tuple[list[SubredditSearchResult], Cursor]:
        """
        Search subreddit names.

        Returns:
            Tuple of (results, next cursor)
        """
        params: dict[str, Any] = {
            "q": require_query(query),
            "limit": SUBREDDIT_SEARCH_PAGE_SIZE,
            "raw_json": 1,
            "include_over_18": "on",
        }
        after = self._optional_cursor(cursor, OpaqueCursor)
        if after is not None:
            params["after"] = after.token

        data = await self._get("/subreddits/search", params)
        children, next_after = _listing_children(data)

        results = [
            SubredditSearchResult(
                name=child.get("display_name", ""),
                display_name=child.get("display_name_prefixed", ""),
                title=child.get("title") or "",
                description=child.get("public_description") or "",
                subscribers=child.get("subscribers") or 0,
                icon=child.get("community_icon") or child.get("icon_img") or "",
                is_nsfw=bool(child.get("over18")),
                url=child.get("url") or "",
                created=datetime.fromtimestamp(child.get("created_utc") or 0, tz=timezone.utc),
            )
            for child in children
        ]
        return results, OpaqueCursor(token=next_after) if next_after else None
