"""
Media normalization for raw listing records.

Turns validated raw records from any of the three listing services into
MediaItem. Reddit posts go through a fixed classification priority:
embed, then video, then gallery, then preview image, then direct image
URL. Posts matching none of these are rejected by ``is_media_post`` in
the adapter and never reach this module.
"""

import html
import re
from datetime import datetime, timezone
from typing import Iterable, Optional
from urllib.parse import urlparse

from mediavault.models.media import (
    EmbedPayload,
    GalleryImage,
    MediaItem,
    MediaType,
    SourceType,
    VideoPayload,
)
from mediavault.models.raw import RawRecord, RedditPost, TagPost, VideoSearchResult

REDDIT_BASE_URL = "https://reddit.com"
REDDIT_MEDIA_HOST = "https://i.redd.it"
TAG_INDEX_POST_URL = "https://rule34.xxx/index.php?page=post&s=view&id={id}"
VIDEO_WATCH_URL = "https://www.youtube.com/watch?v={id}"

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")
IMAGE_HOST_DOMAINS = ("i.redd.it", "i.imgur.com", "imgur.com")
VIDEO_EXTENSIONS = (".mp4", ".webm", ".mov", ".avi", ".mkv")
IMGUR_DOMAIN = "imgur.com"
# Endings an imgur link may already carry; anything else gets ".jpg"
IMGUR_EXTENSIONS = (".jpg", ".png", ".gif")

MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

# Values Reddit puts in ``thumbnail`` instead of a URL
THUMBNAIL_SENTINELS = frozenset({"self", "default", "nsfw", "image", "spoiler", ""})

_ISO_DURATION = re.compile(r"^P(?:(\d+)D)?T?(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")


def extension_from_mime(mime: Optional[str]) -> str:
    """Map a gallery mime type to a file extension; unknown types give ``jpg``."""
    return MIME_EXTENSIONS.get((mime or "").lower(), "jpg")


def decode_html_entities(text: Optional[str]) -> str:
    """Undo the HTML escaping Reddit applies to preview URLs."""
    if not text:
        return ""
    return html.unescape(text)


def _host(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def is_image_host(url: str) -> bool:
    host = _host(url)
    return any(host == domain or host.endswith("." + domain) for domain in IMAGE_HOST_DOMAINS)


def imgur_image_url(url: str) -> str:
    """Append ``.jpg`` to an imgur link that does not end in .jpg, .png or .gif."""
    host = _host(url)
    if host != IMGUR_DOMAIN and not host.endswith("." + IMGUR_DOMAIN):
        return url
    if url.lower().endswith(IMGUR_EXTENSIONS):
        return url
    return f"{url}.jpg"


def has_image_extension(url: str) -> bool:
    path = urlparse(url).path.lower() if url else ""
    return path.endswith(IMAGE_EXTENSIONS)


def is_direct_image_url(url: Optional[str]) -> bool:
    """True for URLs with an image extension or on a known image host."""
    if not url:
        return False
    return has_image_extension(url) or is_image_host(url)


def is_video_file(url: Optional[str]) -> bool:
    if not url:
        return False
    return urlparse(url).path.lower().endswith(VIDEO_EXTENSIONS)


def parse_iso_duration(duration: Optional[str]) -> int:
    """
    Convert an ISO-8601 duration (``PT1H2M3S``) to seconds.

    Malformed values count as zero.

    Example:
        >>> parse_iso_duration("PT1H2M3S")
        3723
    """
    match = _ISO_DURATION.match(duration or "")
    if not match:
        return 0
    days, hours, minutes, seconds = (int(part or 0) for part in match.groups())
    return ((days * 24 + hours) * 60 + minutes) * 60 + seconds


def _timestamp(epoch: Optional[float]) -> datetime:
    if epoch is None:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(epoch, tz=timezone.utc)


def _parse_published(value: str) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.now(timezone.utc)


class MediaNormalizer:
    """
    Normalizer for raw listing records.

    All methods are static; ``normalize`` dispatches on the raw record type.

    Example:
        >>> item = MediaNormalizer.normalize(RedditPost(id="abc", url="https://i.redd.it/abc.png"))
        >>> item.type
        <MediaType.IMAGE: 'image'>
    """

    # Reddit

    @staticmethod
    def gallery_images(post: RedditPost) -> list[GalleryImage]:
        """
        Build gallery entries in original order.

        Entries whose media metadata is missing are skipped.
        """
        if not post.gallery_data or not post.media_metadata:
            return []

        images = []
        for entry in post.gallery_data.items:
            metadata = post.media_metadata.get(entry.media_id)
            if metadata is None:
                continue
            extension = extension_from_mime(metadata.m)
            images.append(
                GalleryImage(
                    url=f"{REDDIT_MEDIA_HOST}/{entry.media_id}.{extension}",
                    width=metadata.s.x,
                    height=metadata.s.y,
                )
            )
        return images

    @staticmethod
    def preview_source_url(post: RedditPost) -> Optional[str]:
        """Full-resolution preview URL; downscaled ``resolutions`` are never used."""
        if post.preview and post.preview.images:
            source = post.preview.images[0].source
            if source and source.url:
                return decode_html_entities(source.url)
        return None

    @staticmethod
    def is_media_post(post: RedditPost) -> bool:
        """True when the post falls into one of the five media classes."""
        if post.media_embed and post.media_embed.content:
            return True
        if post.is_video and post.secure_media and post.secure_media.reddit_video:
            return True
        if post.is_gallery and MediaNormalizer.gallery_images(post):
            return True
        if MediaNormalizer.preview_source_url(post):
            return True
        return is_direct_image_url(post.url)

    @staticmethod
    def thumbnail_for(post: RedditPost) -> str:
        """
        Pick the best thumbnail.

        Order: preview source, direct image URL, first gallery image, the
        low-resolution ``thumbnail`` field, then empty.
        """
        preview = MediaNormalizer.preview_source_url(post)
        if preview:
            return preview

        if is_direct_image_url(post.url):
            return post.url

        if post.is_gallery:
            images = MediaNormalizer.gallery_images(post)
            if images:
                return images[0].url

        thumbnail = post.thumbnail or ""
        if thumbnail not in THUMBNAIL_SENTINELS and thumbnail.startswith("http"):
            return decode_html_entities(thumbnail)

        return ""

    @staticmethod
    def normalize_reddit_post(post: RedditPost) -> MediaItem:
        """
        Classify and normalize one Reddit post.

        Args:
            post: Validated Reddit listing child that passed ``is_media_post``

        Returns:
            MediaItem of type embed, video, gallery or image

        Raises:
            ValueError: If the post matches no media class
        """
        base = {
            "id": post.id,
            "title": post.title,
            "source": SourceType.REDDIT,
            "origin_group": post.subreddit or None,
            "score": post.score,
            "author": post.author,
            "permalink": f"{REDDIT_BASE_URL}{post.permalink}" if post.permalink else "",
            "thumbnail": MediaNormalizer.thumbnail_for(post),
            "created_at": _timestamp(post.created_utc),
            "comment_count": post.num_comments or 0,
            "nsfw": post.over_18,
        }

        if post.media_embed and post.media_embed.content:
            embed = post.media_embed
            return MediaItem(
                **base,
                type=MediaType.EMBED,
                url="",
                embed=EmbedPayload(
                    content=embed.content,
                    width=embed.width,
                    height=embed.height,
                ),
            )

        if post.is_video and post.secure_media and post.secure_media.reddit_video:
            video = post.secure_media.reddit_video
            return MediaItem(
                **base,
                type=MediaType.VIDEO,
                url=video.fallback_url,
                video=VideoPayload(
                    fallback_url=video.fallback_url,
                    has_audio=video.has_audio,
                    width=video.width,
                    height=video.height,
                    duration=video.duration,
                    hls_url=video.hls_url,
                ),
            )

        if post.is_gallery:
            images = MediaNormalizer.gallery_images(post)
            if images:
                return MediaItem(
                    **base,
                    type=MediaType.GALLERY,
                    url=images[0].url,
                    gallery=images,
                )

        preview = MediaNormalizer.preview_source_url(post)
        if preview:
            return MediaItem(**base, type=MediaType.IMAGE, url=preview)

        if is_direct_image_url(post.url):
            return MediaItem(**base, type=MediaType.IMAGE, url=imgur_image_url(post.url))

        raise ValueError(f"Reddit post {post.id} is not a media post")

    # Tag index

    @staticmethod
    def normalize_tag_post(post: TagPost) -> MediaItem:
        """Normalize a tag index post; videos are detected by file extension."""
        base = {
            "id": str(post.id),
            "title": f"Post #{post.id}",
            "source": SourceType.TAG_INDEX,
            "score": post.score or 0,
            "author": post.owner,
            "permalink": TAG_INDEX_POST_URL.format(id=post.id),
            "url": post.file_url,
            "created_at": _timestamp(post.change),
            "comment_count": post.comment_count or 0,
            "nsfw": True,
        }

        if is_video_file(post.file_url):
            return MediaItem(
                **base,
                type=MediaType.VIDEO,
                thumbnail=post.preview_url,
                video=VideoPayload(
                    fallback_url=post.file_url,
                    has_audio=True,
                    width=post.width,
                    height=post.height,
                ),
            )

        return MediaItem(**base, type=MediaType.IMAGE, thumbnail=post.file_url)

    # Video search

    @staticmethod
    def normalize_video_result(result: VideoSearchResult) -> MediaItem:
        """Normalize an enriched video search hit."""
        watch_url = VIDEO_WATCH_URL.format(id=result.id)
        try:
            views = int(result.view_count)
        except (TypeError, ValueError):
            views = 0

        return MediaItem(
            id=result.id,
            type=MediaType.VIDEO,
            title=result.title,
            url=watch_url,
            thumbnail=result.thumbnail,
            source=SourceType.VIDEO_SEARCH,
            score=views,
            author=result.channel_title,
            permalink=watch_url,
            created_at=_parse_published(result.published_at),
            video=VideoPayload(
                fallback_url=watch_url,
                has_audio=True,
                duration=parse_iso_duration(result.duration),
                view_count=views,
            ),
        )

    # Dispatch

    @staticmethod
    def normalize(record: RawRecord) -> MediaItem:
        """
        Normalize any raw record.

        Raises:
            TypeError: If ``record`` is not a known raw record type
        """
        if isinstance(record, RedditPost):
            return MediaNormalizer.normalize_reddit_post(record)
        if isinstance(record, TagPost):
            return MediaNormalizer.normalize_tag_post(record)
        if isinstance(record, VideoSearchResult):
            return MediaNormalizer.normalize_video_result(record)
        raise TypeError(f"Unsupported raw record type: {type(record).__name__}")

    @staticmethod
    def normalize_batch(records: Iterable[RawRecord]) -> list[MediaItem]:
        """Normalize a page of records, preserving order."""
        return [MediaNormalizer.normalize(record) for record in records]


# Singleton instance for convenient import
normalizer = MediaNormalizer()


def normalize(record: RawRecord) -> MediaItem:
    """Convenience function that calls MediaNormalizer.normalize()."""
    return MediaNormalizer.normalize(record)


def normalize_batch(records: Iterable[RawRecord]) -> list[MediaItem]:
    """Convenience function that calls MediaNormalizer.normalize_batch()."""
    return MediaNormalizer.normalize_batch(records)


def is_media_post(post: RedditPost) -> bool:
    """Convenience function that calls MediaNormalizer.is_media_post()."""
    return MediaNormalizer.is_media_post(post)
