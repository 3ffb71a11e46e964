"""
Raw record shapes returned by each listing service.

Adapters validate upstream JSON into these models at their boundary. They
ignore unknown fields and default the optional ones, so a post with a
sparse payload still validates. Nothing past the normalizer sees them.
"""
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _RawModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


# Reddit

class RedditVideo(_RawModel):
    fallback_url: str
    has_audio: bool = False
    width: int = 0
    height: int = 0
    duration: int = 0
    hls_url: Optional[str] = None


class SecureMedia(_RawModel):
    reddit_video: Optional[RedditVideo] = None


class MediaEmbed(_RawModel):
    content: Optional[str] = None
    width: int = 0
    height: int = 0


class PreviewSource(_RawModel):
    url: str
    width: int = 0
    height: int = 0


class PreviewImage(_RawModel):
    source: Optional[PreviewSource] = None
    resolutions: list[PreviewSource] = Field(default_factory=list)


class Preview(_RawModel):
    images: list[PreviewImage] = Field(default_factory=list)


class MediaMetadataSize(_RawModel):
    x: int = 0
    y: int = 0


class MediaMetadata(_RawModel):
    """Per-image entry of a gallery; ``m`` is the mime type."""

    status: Optional[str] = None
    e: Optional[str] = None
    m: Optional[str] = None
    s: MediaMetadataSize = Field(default_factory=MediaMetadataSize)


class GalleryItem(_RawModel):
    media_id: str
    id: Optional[int] = None


class GalleryData(_RawModel):
    items: list[GalleryItem] = Field(default_factory=list)


class RedditPost(_RawModel):
    """A ``t3`` listing child."""

    id: str
    title: str = ""
    url: str = ""
    author: str = "[deleted]"
    created_utc: Optional[float] = None
    score: int = 0
    num_comments: int = 0
    permalink: str = ""
    subreddit: str = ""
    thumbnail: Optional[str] = None
    is_video: bool = False
    is_gallery: bool = False
    over_18: bool = False
    secure_media: Optional[SecureMedia] = None
    media_embed: Optional[MediaEmbed] = None
    preview: Optional[Preview] = None
    media_metadata: Optional[dict[str, MediaMetadata]] = None
    gallery_data: Optional[GalleryData] = None


# Tag index

class TagPost(_RawModel):
    id: int
    file_url: str = ""
    preview_url: str = ""
    sample_url: str = ""
    width: int = 0
    height: int = 0
    rating: str = ""
    tags: str = ""
    owner: str = ""
    score: Optional[int] = 0
    change: Optional[int] = None
    comment_count: Optional[int] = 0


# Video search

class VideoSearchResult(_RawModel):
    """One search hit after the details batch has been merged in."""

    id: str
    title: str = ""
    channel_title: str = ""
    thumbnail: str = ""
    published_at: str = ""
    description: str = ""
    duration: str = "PT0S"
    view_count: str = "0"


RawRecord = Union[RedditPost, TagPost, VideoSearchResult]
