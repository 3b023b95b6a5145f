"""Type definitions shared across the app.

- enums: role, gallery, rating, approval and subscription enums
- gallery: GalleryItem / NewGalleryItem and row normalization helpers
"""

from espresso_gallery.types.enums import (
    ApprovalStatus,
    ContentRating,
    ContentType,
    GalleryType,
    Role,
    SubscriptionStatus,
    SubscriptionType,
)
from espresso_gallery.types.gallery import (
    DEFAULT_TITLE,
    GalleryItem,
    NewGalleryItem,
    clean_text,
    decode_tags,
    encode_tags,
    normalize_url,
    parse_flag,
    parse_tag_field,
)

__all__ = [
    "ApprovalStatus",
    "ContentRating",
    "ContentType",
    "GalleryType",
    "Role",
    "SubscriptionStatus",
    "SubscriptionType",
    "DEFAULT_TITLE",
    "GalleryItem",
    "NewGalleryItem",
    "clean_text",
    "decode_tags",
    "encode_tags",
    "normalize_url",
    "parse_flag",
    "parse_tag_field",
]
