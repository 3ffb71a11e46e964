"""
MediaVault - command-line entry point.

Opens one browsing session through the aggregator, loads the requested
number of pages and prints the visible items as JSON lines. Stored
settings supply the default browse sort and view filter, and --folder
saves the printed items into a library folder.

Usage:
    python -m mediavault.main reddit pics --sort top --pages 2
    python -m mediavault.main reddit "aurora" --search --subreddit EarthPorn
    python -m mediavault.main tags "cat rating:safe" --filter images
    python -m mediavault.main videos "lofi beats"
    python -m mediavault.main reddit EarthPorn --folder Wallpapers
    python -m mediavault.main reddit pics --sort new --filter videos --remember
"""
import argparse
import asyncio
import sys
from typing import Iterable, Optional, Sequence

from mediavault.adapters.base import ContentAdapter
from mediavault.adapters.http import AsyncHTTPClient
from mediavault.adapters.rate_limiter import SlidingWindowRateLimiter
from mediavault.adapters.reddit import REDDIT_API_URL, RedditAdapter
from mediavault.adapters.tag_index import TAG_INDEX_API_URL, TagIndexAdapter
from mediavault.adapters.video_search import VIDEO_API_URL, VideoSearchAdapter
from mediavault.aggregator import Aggregator
from mediavault.auth.credentials import REDDIT_AUTH_URL, CredentialCache
from mediavault.config import AppConfig
from mediavault.library.library import Library
from mediavault.models.library import AppSettings, MediaFolder
from mediavault.models.media import MediaFilter, MediaItem, SourceType
from mediavault.models.session import (
    Criteria,
    RedditCriteria,
    RedditSort,
    TagCriteria,
    VideoCriteria,
)
from mediavault.sessions.store import SessionStore
from mediavault.settings.connection import RedisConnection
from mediavault.settings.store import SettingsStore
from mediavault.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

SOURCES = {
    "reddit": SourceType.REDDIT,
    "tags": SourceType.TAG_INDEX,
    "videos": SourceType.VIDEO_SEARCH,
}


def build_adapters(config: AppConfig) -> dict[SourceType, ContentAdapter]:
    """Create one adapter per source type from configuration."""
    timeout = config.http_timeout
    credentials = CredentialCache(
        config.reddit_client_id,
        config.reddit_client_secret,
        config.reddit_user_agent,
        http=AsyncHTTPClient(REDDIT_AUTH_URL, service="Reddit auth", timeout=timeout),
    )
    return {
        SourceType.REDDIT: RedditAdapter(
            credentials,
            user_agent=config.reddit_user_agent,
            http=AsyncHTTPClient(REDDIT_API_URL, service="Reddit", timeout=timeout),
            rate_limiter=SlidingWindowRateLimiter(config.reddit_rate_limit, 60),
        ),
        SourceType.TAG_INDEX: TagIndexAdapter(
            api_key=config.tag_index_api_key,
            user_id=config.tag_index_user_id,
            http=AsyncHTTPClient(TAG_INDEX_API_URL, service="Tag index", timeout=timeout),
        ),
        SourceType.VIDEO_SEARCH: VideoSearchAdapter(
            config.video_search_api_key,
            http=AsyncHTTPClient(VIDEO_API_URL, service="Video search", timeout=timeout),
        ),
    }


def build_criteria(
    args: argparse.Namespace, settings: Optional[AppSettings] = None
) -> Criteria:
    """Criteria for the parsed query; browse sort falls back to the stored default."""
    source = SOURCES[args.source]
    if source is SourceType.REDDIT:
        if args.search:
            return RedditCriteria(
                subreddit=args.subreddit,
                search_query=args.query,
                is_search_mode=True,
                sort=args.sort or "relevance",
            )
        default_sort = settings.default_sort if settings else RedditSort.HOT
        return RedditCriteria(subreddit=args.query, sort=args.sort or default_sort.value)
    if source is SourceType.TAG_INDEX:
        return TagCriteria(tags=args.query)
    return VideoCriteria(query=args.query)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mediavault",
        description="Browse media listings from the command line.",
    )
    parser.add_argument("source", choices=sorted(SOURCES), help="Content source")
    parser.add_argument("query", help="Subreddit(s), search text or tags")
    parser.add_argument("--sort", help="Listing order (Reddit only)")
    parser.add_argument(
        "--search", action="store_true", help="Treat the query as Reddit search text"
    )
    parser.add_argument("--subreddit", help="Restrict a Reddit search to subreddit(s)")
    parser.add_argument("--pages", type=int, default=1, help="Pages to load (default 1)")
    parser.add_argument(
        "--filter",
        dest="media_filter",
        choices=[f.value for f in MediaFilter],
        help="Only print items of this kind (default: stored preference)",
    )
    parser.add_argument("--folder", help="Save the printed items into this library folder")
    parser.add_argument(
        "--remember",
        action="store_true",
        help="Store --sort (Reddit browse) and --filter as the new defaults",
    )
    args = parser.parse_args(argv)
    if args.pages < 1:
        parser.error("--pages must be at least 1")
    return args


async def save_to_folder(library: Library, name: str, items: Iterable[MediaItem]) -> MediaFolder:
    """Add items to the folder called ``name``, creating it when missing."""
    items = list(items)
    for folder in library.folders:
        if folder.name == name:
            added = await library.add_to_folder(folder.id, items)
            logger.info("cli_folder_updated", folder_id=folder.id, added=added)
            return library.get_folder(folder.id)
    return await library.create_folder(name, initial_items=items)


async def run(args: argparse.Namespace, config: AppConfig) -> int:
    """
    Run one query and print its items.

    Returns:
        Process exit code (0 on success, 1 when the session ended in error)
    """
    connection = RedisConnection(config.redis_url)
    library = await Library.load(SettingsStore.from_connection(connection))
    aggregator = Aggregator(SessionStore(), build_adapters(config))
    try:
        criteria = build_criteria(args, library.settings)
        session_id = await aggregator.open_query(SOURCES[args.source], criteria)

        for _ in range(args.pages - 1):
            if aggregator.store.require_session(session_id).state.error:
                break
            if not await aggregator.load_more(session_id):
                break

        session = aggregator.store.require_session(session_id)
        if session.state.error:
            print(f"error: {session.state.error}", file=sys.stderr)
            return 1

        media_filter = MediaFilter(args.media_filter or library.settings.media_filter)
        visible = aggregator.visible_items(session_id, media_filter)
        for item in visible:
            print(item.model_dump_json())

        if args.folder:
            await save_to_folder(library, args.folder, visible)

        if args.remember:
            browse_sort = None
            if args.source == "reddit" and not args.search and args.sort in set(RedditSort):
                browse_sort = RedditSort(args.sort)
            await library.update_preferences(
                default_sort=browse_sort, media_filter=args.media_filter
            )

        logger.info(
            "cli_query_completed",
            source=args.source,
            items=len(session.state.items),
            has_more=session.state.has_more,
            media_filter=media_filter.value,
        )
        return 0
    finally:
        await aggregator.close()
        await connection.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    config = AppConfig.from_env()
    setup_logging(level=config.log_level, environment=config.environment)

    logger.info("cli_starting", source=args.source, environment=config.environment)

    try:
        return asyncio.run(run(args, config))
    except KeyboardInterrupt:
        logger.info("cli_interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
