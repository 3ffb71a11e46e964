"""
Saved media: favorites and user folders.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from mediavault.models.media import MediaFilter, MediaItem
from mediavault.models.session import RedditSort, VideoSelection


class MediaFolder(BaseModel):
    """
    User folder of media snapshots.

    Media ids are unique within one folder; use ``contains`` before adding.
    """

    id: str
    name: str = Field(..., min_length=1)
    color: str = "#6366f1"
    items: list[MediaItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    custom_thumbnail: Optional[str] = None

    def contains(self, media_id: str) -> bool:
        return any(item.id == media_id for item in self.items)


class AppSettings(BaseModel):
    """Everything persisted through the settings store."""

    default_sort: RedditSort = RedditSort.HOT
    media_filter: MediaFilter = MediaFilter.ALL
    favorite_subreddits: list[str] = Field(default_factory=list)
    favorite_media: list[MediaItem] = Field(default_factory=list)
    media_folders: list[MediaFolder] = Field(default_factory=list)
    selected_videos: list[VideoSelection] = Field(default_factory=list)

    @property
    def favorite_media_ids(self) -> list[str]:
        return [item.id for item in self.favorite_media]
