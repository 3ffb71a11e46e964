"""
Browsing session records and the per-source query criteria they carry.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Hashable, Literal, Optional, Union

from pydantic import BaseModel, Field

from mediavault.models.cursor import Cursor
from mediavault.models.media import MediaItem, SourceType


class RedditSort(str, Enum):
    """Listing order for subreddit browse mode."""

    HOT = "hot"
    NEW = "new"
    TOP = "top"
    BEST = "best"
    RISING = "rising"


class SearchSort(str, Enum):
    """Result order for global keyword search."""

    RELEVANCE = "relevance"
    HOT = "hot"
    TOP = "top"
    NEW = "new"


class RedditCriteria(BaseModel):
    """
    Reddit query.

    ``subreddit`` may hold several comma- or plus-separated names. Browse
    mode uses ``sort`` as a RedditSort value, global search as a SearchSort
    value.
    """

    kind: Literal["reddit"] = "reddit"
    subreddit: Optional[str] = None
    search_query: Optional[str] = None
    is_search_mode: bool = False
    sort: str = RedditSort.HOT.value

    def match_key(self) -> Hashable:
        # sort excluded: a sort change re-queries the same session
        return (self.subreddit, self.search_query, self.is_search_mode)


class TagCriteria(BaseModel):
    """Tag index query; ``tags`` is the raw space-separated tag string."""

    kind: Literal["tag_index"] = "tag_index"
    tags: str = ""

    def match_key(self) -> Hashable:
        return (self.tags,)


class VideoSelection(BaseModel):
    """A video the user picked into the multi-video viewer."""

    id: str
    title: str = ""
    channel_title: str = ""
    thumbnail: str = ""
    duration: str = "PT0S"
    view_count: str = "0"


class VideoCriteria(BaseModel):
    """Video viewer state: last search text plus the selected videos."""

    kind: Literal["video_search"] = "video_search"
    query: str = ""
    selected_videos: list[VideoSelection] = Field(default_factory=list)

    def match_key(self) -> Hashable:
        return frozenset(video.id for video in self.selected_videos)


Criteria = Union[RedditCriteria, TagCriteria, VideoCriteria]

CRITERIA_TYPES: dict[SourceType, type] = {
    SourceType.REDDIT: RedditCriteria,
    SourceType.TAG_INDEX: TagCriteria,
    SourceType.VIDEO_SEARCH: VideoCriteria,
}


class SessionState(BaseModel):
    """Mutable fetch state of one session."""

    items: list[MediaItem] = Field(default_factory=list)
    cursor: Cursor = None
    is_loading: bool = False
    error: Optional[str] = None
    has_more: bool = True
    selected_index: Optional[int] = None
    generation: int = Field(0, ge=0, description="Bumped on every new query")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ViewerSession(BaseModel):
    """One independent, resumable browsing context."""

    id: str
    source: SourceType
    title: str
    icon: str
    criteria: Criteria = Field(..., discriminator="kind")
    state: SessionState = Field(default_factory=SessionState)
    created_at: datetime = Field(default_factory=_utcnow)
    last_active_at: datetime = Field(default_factory=_utcnow)

    def matches(self, source: SourceType, criteria: Criteria) -> bool:
        """True when this session serves the same query as ``criteria``."""
        if self.source != source or not isinstance(criteria, CRITERIA_TYPES[source]):
            return False
        return self.criteria.match_key() == criteria.match_key()
