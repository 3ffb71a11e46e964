"""
Aggregation facade.

Drives "new query" versus "load more" for every session in a SessionStore,
routing each session to the adapter for its source type and normalizing
whatever comes back. This is the only place fetch errors become session
state.
"""

import time
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import BaseModel

from mediavault.adapters.base import ContentAdapter
from mediavault.adapters.exceptions import FetchError, ValidationError
from mediavault.media.filters import filter_items
from mediavault.media.normalizer import MediaNormalizer, normalizer as default_normalizer
from mediavault.models.cursor import Cursor, FetchResult
from mediavault.models.media import MediaFilter, MediaItem, SourceType
from mediavault.models.session import Criteria, RedditCriteria, RedditSort
from mediavault.sessions.store import SessionStore
from mediavault.utils.logger import get_logger, log_page_fetch

logger = get_logger(__name__)

CriteriaUpdate = Union[Criteria, Mapping[str, Any]]


class Aggregator:
    """
    Session-aware facade over the content adapters.

    Every fetch is tagged with the session's generation at the time it
    started. A completion whose session was closed, or whose generation was
    bumped by a newer query, is discarded without touching the store.

    Example:
        >>> aggregator = Aggregator(SessionStore(), {SourceType.TAG_INDEX: TagIndexAdapter()})
        >>> sid = await aggregator.open_query(SourceType.TAG_INDEX, TagCriteria(tags="cat"))
        >>> await aggregator.load_more(sid)
        >>> len(aggregator.visible_items(sid, MediaFilter.IMAGES))
        137
    """

    def __init__(
        self,
        store: SessionStore,
        adapters: Mapping[SourceType, ContentAdapter],
        normalizer: MediaNormalizer = default_normalizer,
    ) -> None:
        self.store = store
        self.adapters = dict(adapters)
        self.normalizer = normalizer

    def _adapter_for(self, source: SourceType) -> ContentAdapter:
        try:
            return self.adapters[source]
        except KeyError:
            raise LookupError(f"No adapter configured for source '{source.value}'") from None

    # Queries

    async def open_query(
        self,
        source: SourceType,
        criteria: Criteria,
        title: Optional[str] = None,
    ) -> str:
        """
        Open a query, reusing an existing session that already serves it.

        A reused session is switched to and keeps its items, cursor and
        scroll state; only a newly created session fetches its first page.

        Returns:
            Id of the reused or created session

        Raises:
            LookupError: If no adapter serves ``source``; no session is created
        """
        self._adapter_for(source)

        existing = self.store.find_session(source, criteria)
        if existing is not None:
            self.store.switch_to_session(existing)
            logger.info("session_reused", session_id=existing, source=source.value)
            return existing

        session_id = self.store.create_session(source, criteria, title=title)
        await self.new_query(session_id)
        return session_id

    async def new_query(
        self, session_id: str, criteria: Optional[CriteriaUpdate] = None
    ) -> None:
        """
        Replace a session's results with the first page of its query.

        Args:
            session_id: Target session
            criteria: Optional criteria fields (or a whole criteria model of
                the session's kind) merged in before fetching

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = self.store.require_session(session_id)
        adapter = self._adapter_for(session.source)

        if criteria is not None:
            if isinstance(criteria, BaseModel):
                if type(criteria) is not type(session.criteria):
                    raise TypeError(
                        f"{session.source.value} sessions need "
                        f"{type(session.criteria).__name__}"
                    )
                changes = {
                    name: getattr(criteria, name)
                    for name in type(criteria).model_fields
                    if name != "kind"
                }
            else:
                changes = dict(criteria)
            self.store.update_session_data(session_id, **changes)

        generation = self.store.begin_fetch(session_id, new_query=True)
        await self._fetch(adapter, session_id, generation, cursor=None, append=False)

    async def load_more(self, session_id: str) -> bool:
        """
        Append the next page to a session.

        Dropped silently while the session is loading or exhausted. A session
        that has never fetched gets its first page.

        Returns:
            True when a fetch was issued
        """
        session = self.store.require_session(session_id)
        state = session.state
        adapter = self._adapter_for(session.source)

        if state.is_loading or not state.has_more:
            logger.debug(
                "load_more_skipped",
                session_id=session_id,
                is_loading=state.is_loading,
                has_more=state.has_more,
            )
            return False

        generation = self.store.begin_fetch(session_id, new_query=False)
        await self._fetch(adapter, session_id, generation, cursor=state.cursor, append=True)
        return True

    async def change_sort(self, session_id: str, sort: Union[str, RedditSort]) -> None:
        """
        Change the listing order of a Reddit browse session and re-query.

        Raises:
            ValueError: If the session is not a Reddit browse session
            ValidationError: If ``sort`` is not a browse sort
        """
        session = self.store.require_session(session_id)
        criteria = session.criteria
        if not isinstance(criteria, RedditCriteria) or criteria.is_search_mode:
            raise ValueError("Sort can only be changed on Reddit browse sessions")

        try:
            sort = RedditSort(sort)
        except ValueError:
            raise ValidationError(f"Unsupported sort '{sort}'", field="sort") from None

        await self.new_query(session_id, {"sort": sort.value})

    async def retry(self, session_id: str) -> None:
        """Re-issue a session's query from the first page."""
        await self.new_query(session_id)

    def visible_items(
        self, session_id: str, media_filter: MediaFilter = MediaFilter.ALL
    ) -> list[MediaItem]:
        """Items of a session that pass the view filter. The session is untouched."""
        session = self.store.require_session(session_id)
        return filter_items(session.state.items, media_filter)

    def select_item(self, session_id: str, index: Optional[int]) -> None:
        """
        Set or clear the open item of a session.

        Raises:
            IndexError: If ``index`` is outside the session's items
        """
        session = self.store.require_session(session_id)
        if index is not None and not 0 <= index < len(session.state.items):
            raise IndexError(
                f"Item index {index} out of range for {len(session.state.items)} items"
            )
        self.store.update_session(session_id, selected_index=index)

    async def close(self) -> None:
        """Close every adapter's HTTP connections."""
        for adapter in self.adapters.values():
            await adapter.close()
        logger.info("aggregator_closed", adapters=len(self.adapters))

    # Internals

    def _normalize(self, page: FetchResult) -> list[MediaItem]:
        items = []
        for record in page.items:
            try:
                items.append(self.normalizer.normalize(record))
            except (TypeError, ValueError) as e:
                logger.warning(
                    "media_normalize_skipped",
                    record_id=getattr(record, "id", None),
                    error=str(e),
                )
        return items

    async def _fetch(
        self,
        adapter: ContentAdapter,
        session_id: str,
        generation: int,
        cursor: Cursor,
        append: bool,
    ) -> None:
        try:
            await self._fetch_page(adapter, session_id, generation, cursor, append)
        finally:
            # Unexpected errors propagate, but never leave a current fetch loading
            if self.store.is_current(session_id, generation):
                state = self.store.require_session(session_id).state
                if state.is_loading:
                    logger.error("fetch_aborted", session_id=session_id, generation=generation)
                    self.store.update_session(session_id, is_loading=False)

    async def _fetch_page(
        self,
        adapter: ContentAdapter,
        session_id: str,
        generation: int,
        cursor: Cursor,
        append: bool,
    ) -> None:
        session = self.store.require_session(session_id)
        source = session.source
        start_time = time.time()

        try:
            page = await adapter.fetch_page(session.criteria, cursor)
        except FetchError as e:
            duration_ms = (time.time() - start_time) * 1000
            if not self.store.is_current(session_id, generation):
                logger.info(
                    "stale_fetch_error_discarded",
                    session_id=session_id,
                    generation=generation,
                    error=e.message,
                )
                return

            self.store.update_session(session_id, is_loading=False, error=e.message)
            log_page_fetch(
                source=source.value,
                session_id=session_id,
                duration_ms=duration_ms,
                item_count=0,
                has_more=self.store.require_session(session_id).state.has_more,
                error=e.message,
                status_code=e.status_code,
                retryable=e.retryable,
            )
            return

        duration_ms = (time.time() - start_time) * 1000
        if not self.store.is_current(session_id, generation):
            logger.info(
                "stale_page_discarded",
                session_id=session_id,
                generation=generation,
                item_count=len(page.items),
            )
            return

        new_items = self._normalize(page)
        current = self.store.require_session(session_id).state
        items = current.items + new_items if append else new_items

        self.store.update_session(
            session_id,
            items=items,
            cursor=page.next_cursor,
            has_more=page.has_more,
            is_loading=False,
            error=None,
        )

        log_page_fetch(
            source=source.value,
            session_id=session_id,
            duration_ms=duration_ms,
            item_count=len(new_items),
            has_more=page.has_more,
            total_items=len(items),
            append=append,
        )
