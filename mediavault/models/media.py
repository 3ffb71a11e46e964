"""
Unified media records produced by the normalizer.

Every listing service is reduced to MediaItem. Items are immutable once
created; favorites and folders store snapshots made with
MediaItem.snapshot() so later list mutations never reach saved copies.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SourceType(str, Enum):
    """Listing service a record or session belongs to."""

    REDDIT = "reddit"
    TAG_INDEX = "tag_index"
    VIDEO_SEARCH = "video_search"


class MediaType(str, Enum):
    """Classification assigned by the normalizer."""

    IMAGE = "image"
    VIDEO = "video"
    GALLERY = "gallery"
    EMBED = "embed"


class MediaFilter(str, Enum):
    """Client-side view filter over a session's items."""

    ALL = "all"
    IMAGES = "images"
    VIDEOS = "videos"
    GALLERIES = "galleries"


class VideoPayload(BaseModel):
    """Playback details for video items."""

    model_config = ConfigDict(frozen=True)

    fallback_url: str = Field(..., description="Progressive stream or watch URL")
    has_audio: bool = Field(True, description="Whether the stream carries audio")
    width: int = Field(0, ge=0)
    height: int = Field(0, ge=0)
    duration: int = Field(0, ge=0, description="Duration in seconds")
    hls_url: Optional[str] = Field(None, description="Adaptive stream URL")
    view_count: Optional[int] = Field(None, ge=0)


class GalleryImage(BaseModel):
    """One entry of a gallery post."""

    model_config = ConfigDict(frozen=True)

    url: str
    width: int = 0
    height: int = 0


class EmbedPayload(BaseModel):
    """Inline embeddable HTML (e.g. an iframe from a third-party host)."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(..., min_length=1)
    width: int = 0
    height: int = 0


_PAYLOAD_FIELDS = {
    MediaType.VIDEO: "video",
    MediaType.GALLERY: "gallery",
    MediaType.EMBED: "embed",
}


class MediaItem(BaseModel):
    """
    Normalized media record.

    Exactly one of ``video``, ``gallery`` or ``embed`` is set and it must
    match ``type``; ``image`` items carry no payload.

    Example:
        >>> item = MediaItem(
        ...     id="abc123",
        ...     type=MediaType.IMAGE,
        ...     url="https://i.redd.it/abc123.jpg",
        ...     source=SourceType.REDDIT,
        ... )
        >>> item.display_thumbnail
        'https://i.redd.it/abc123.jpg'
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique within its source")
    type: MediaType
    title: str = ""
    url: str = ""
    thumbnail: str = Field("", description="Best-effort preview, may be empty")
    source: SourceType
    origin_group: Optional[str] = Field(None, description="Subreddit for Reddit items")
    score: int = 0
    author: str = ""
    permalink: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    comment_count: int = Field(0, ge=0)
    nsfw: bool = False

    video: Optional[VideoPayload] = None
    gallery: Optional[list[GalleryImage]] = None
    embed: Optional[EmbedPayload] = None

    @model_validator(mode="after")
    def check_payload_matches_type(self) -> "MediaItem":
        """Ensure the payload present is the one the type calls for."""
        expected = _PAYLOAD_FIELDS.get(self.type)
        for field_name in _PAYLOAD_FIELDS.values():
            present = getattr(self, field_name) is not None
            if field_name == expected and not present:
                raise ValueError(f"{self.type.value} item requires a {field_name} payload")
            if field_name != expected and present:
                raise ValueError(
                    f"{self.type.value} item must not carry a {field_name} payload"
                )
        return self

    @property
    def display_thumbnail(self) -> str:
        """Thumbnail to render; falls back to the media URL when empty."""
        return self.thumbnail or self.url

    def snapshot(self) -> "MediaItem":
        """Return an independent deep copy for favorites and folders."""
        return self.model_copy(deep=True)
