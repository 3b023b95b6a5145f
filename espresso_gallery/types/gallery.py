"""Gallery item models and row normalization.

Rows reach the API from several places: ORM objects, raw mappings from
``text()`` queries and legacy rows written by older clients (tags stored as a
list, or as a JSON string that encodes another JSON string; camelCase keys).
Everything funnels through ``GalleryItem.from_row`` so the routes only ever see
one shape.
"""

import json
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from espresso_gallery.types.enums import ContentRating, GalleryType

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Featured Model"
SOCIAL_FIELDS = ("instagram", "twitter", "tiktok", "onlyfans")

_TRUE_WORDS = {"true", "1", "yes"}
_FALSE_WORDS = {"false", "0", "no"}


def decode_tags(raw: Any) -> list[str]:
    """Decode a stored tags value into a list of strings.

    Accepts a JSON array string, an already-decoded list, or a JSON string whose
    payload is itself a JSON array string. Non-string elements are dropped and
    any decode failure yields an empty list.
    """
    value = raw
    # At most two layers of encoding have been seen in stored rows
    for _ in range(2):
        if not isinstance(value, str):
            break
        try:
            value = json.loads(value)
        except (ValueError, TypeError):
            logger.debug(f"Undecodable tags value: {raw!r}")
            return []

    if not isinstance(value, list):
        return []
    return [tag for tag in value if isinstance(tag, str)]


def encode_tags(tags: list[str]) -> str:
    return json.dumps(tags)


def parse_tag_field(raw: str | None) -> list[str]:
    """Parse the multipart ``tags`` field: a JSON array, blanks removed."""
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except ValueError:
        logger.warning(f"Ignoring malformed tags field: {raw[:100]!r}")
        return []
    if not isinstance(value, list):
        return []
    return [tag for tag in value if isinstance(tag, str) and tag.strip()]


def normalize_url(url: str | None, prefix: str = "/uploads") -> str:
    """Return absolute urls unchanged, otherwise ``<prefix>/<basename>``."""
    if not url:
        return ""
    if url.startswith(("http://", "https://")):
        return url
    filename = url.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]
    return f"{prefix.rstrip('/')}/{filename}"


def clean_text(value: str | None) -> str | None:
    """Trim a free-text field; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_flag(value: Any) -> bool | None:
    """Interpret a loosely typed boolean (query strings, form fields, JSON).

    Returns None when the value is not recognizable.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return None


def _pick(row: Any, snake: str) -> Any:
    """Read ``snake`` (or its camelCase twin) from a mapping or an object."""
    camel = to_camel(snake)
    if isinstance(row, Mapping):
        if snake in row:
            return row[snake]
        return row.get(camel)
    value = getattr(row, snake, None)
    if value is None:
        value = getattr(row, camel, None)
    return value


class GalleryItem(BaseModel):
    """Canonical gallery record as returned to clients (camelCase JSON)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    url: str
    title: str
    type: GalleryType
    content_rating: ContentRating = ContentRating.SFW
    is_premium: bool = False
    tags: list[str] = Field(default_factory=list)
    description: str | None = None
    instagram: str | None = None
    twitter: str | None = None
    tiktok: str | None = None
    onlyfans: str | None = None
    created_at: str

    @classmethod
    def from_row(cls, row: Any, url_prefix: str = "/uploads") -> "GalleryItem":
        """Build the canonical item from an ORM object or a snake/camel mapping."""
        created_at = _pick(row, "created_at")
        if isinstance(created_at, datetime):
            created_at = created_at.isoformat()

        raw_type = _pick(row, "type")
        try:
            item_type = GalleryType(raw_type)
        except ValueError:
            logger.warning(f"Gallery row {_pick(row, 'id')} has unknown type {raw_type!r}")
            item_type = GalleryType.GALLERY

        return cls(
            id=int(_pick(row, "id")),
            url=normalize_url(_pick(row, "url"), url_prefix),
            title=_pick(row, "title") or DEFAULT_TITLE,
            type=item_type,
            content_rating=ContentRating.parse(_pick(row, "content_rating")),
            is_premium=bool(parse_flag(_pick(row, "is_premium"))),
            tags=decode_tags(_pick(row, "tags")),
            description=clean_text(_pick(row, "description")),
            instagram=clean_text(_pick(row, "instagram")),
            twitter=clean_text(_pick(row, "twitter")),
            tiktok=clean_text(_pick(row, "tiktok")),
            onlyfans=clean_text(_pick(row, "onlyfans")),
            created_at=str(created_at or ""),
        )

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class NewGalleryItem(BaseModel):
    """Metadata for an item about to be inserted."""

    url: str
    type: GalleryType
    title: str = DEFAULT_TITLE
    content_rating: ContentRating = ContentRating.SFW
    is_premium: bool = False
    tags: list[str] = Field(default_factory=list)
    description: str | None = None
    instagram: str | None = None
    twitter: str | None = None
    tiktok: str | None = None
    onlyfans: str | None = None

    @classmethod
    def from_form(
        cls,
        *,
        url: str,
        type: GalleryType,
        title: str | None = None,
        description: str | None = None,
        tags: str | None = None,
        content_rating: str | None = None,
        is_premium: str | None = None,
        instagram: str | None = None,
        twitter: str | None = None,
        tiktok: str | None = None,
        onlyfans: str | None = None,
    ) -> "NewGalleryItem":
        """Apply upload form defaults. Malformed optional fields fall back quietly."""
        return cls(
            url=url,
            type=type,
            title=clean_text(title) or DEFAULT_TITLE,
            content_rating=ContentRating.parse(content_rating),
            is_premium=parse_flag(is_premium) is True,
            tags=parse_tag_field(tags),
            description=clean_text(description),
            instagram=clean_text(instagram),
            twitter=clean_text(twitter),
            tiktok=clean_text(tiktok),
            onlyfans=clean_text(onlyfans),
        )
