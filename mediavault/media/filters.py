"""
Client-side view filters.

Filtering is a pure view over a session's items: it never changes the
fetched list or the pagination cursor.
"""
from typing import Iterable

from mediavault.models.media import MediaFilter, MediaItem, MediaType

_FILTER_TYPES = {
    MediaFilter.IMAGES: {MediaType.IMAGE},
    MediaFilter.VIDEOS: {MediaType.VIDEO, MediaType.EMBED},
    MediaFilter.GALLERIES: {MediaType.GALLERY},
}


def matches_filter(item: MediaItem, media_filter: MediaFilter) -> bool:
    allowed = _FILTER_TYPES.get(MediaFilter(media_filter))
    return allowed is None or item.type in allowed


def filter_items(items: Iterable[MediaItem], media_filter: MediaFilter) -> list[MediaItem]:
    """Return the items visible under ``media_filter``, in order."""
    return [item for item in items if matches_filter(item, media_filter)]
