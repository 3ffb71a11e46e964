"""
Media normalization and view filtering.

- MediaNormalizer: raw listing records to MediaItem
- filter_items: image / video / gallery view filter
"""

from mediavault.media.filters import filter_items, matches_filter
from mediavault.media.normalizer import (
    MediaNormalizer,
    decode_html_entities,
    extension_from_mime,
    is_direct_image_url,
    is_media_post,
    normalize,
    normalize_batch,
    normalizer,
    parse_iso_duration,
)

__all__ = [
    # Normalizer
    "MediaNormalizer",
    "normalizer",
    "normalize",
    "normalize_batch",
    "is_media_post",
    # Helpers
    "decode_html_entities",
    "extension_from_mime",
    "is_direct_image_url",
    "parse_iso_duration",
    # Filters
    "filter_items",
    "matches_filter",
]
