"""Gallery record store.

Thin async functions over the ``gallery`` table. Every row leaves this module
as a ``GalleryItem``, never as an ORM object.
"""

import logging
from datetime import UTC, datetime
from typing import cast

from sqlalchemy import CursorResult, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from espresso_gallery.config import settings
from espresso_gallery.db.models import GalleryItemRecord
from espresso_gallery.errors import NotFoundError
from espresso_gallery.types import GalleryItem, GalleryType, NewGalleryItem, encode_tags

logger = logging.getLogger(__name__)


def _to_item(record: GalleryItemRecord) -> GalleryItem:
    return GalleryItem.from_row(record, url_prefix=settings.uploads_url_prefix)


async def _get_record(session: AsyncSession, item_id: int) -> GalleryItemRecord:
    record = await session.get(GalleryItemRecord, item_id)
    if record is None:
        raise NotFoundError("Gallery item not found", detail={"id": item_id})
    return record


async def insert_item(session: AsyncSession, item: NewGalleryItem) -> GalleryItem:
    """Insert a new row; ``id`` and ``created_at`` are assigned here."""
    record = GalleryItemRecord(
        url=item.url,
        title=item.title,
        type=item.type.value,
        content_rating=item.content_rating.value,
        is_premium=item.is_premium,
        tags=encode_tags(item.tags),
        description=item.description,
        instagram=item.instagram,
        twitter=item.twitter,
        tiktok=item.tiktok,
        onlyfans=item.onlyfans,
        created_at=datetime.now(UTC).isoformat(),
    )
    session.add(record)
    await session.flush()
    logger.info(f"Inserted {item.type.value} item {record.id} ({record.url})")
    return _to_item(record)


async def list_by_type(
    session: AsyncSession, item_type: GalleryType, premium: bool | None = None
) -> list[GalleryItem]:
    """Items of one type, newest first. ``premium`` None means no filter."""
    query = select(GalleryItemRecord).where(GalleryItemRecord.type == item_type.value)
    if premium is not None:
        query = query.where(GalleryItemRecord.is_premium == premium)
    query = query.order_by(GalleryItemRecord.created_at.desc(), GalleryItemRecord.id.desc())
    result = await session.execute(query)
    return [_to_item(r) for r in result.scalars().all()]


async def get_item(session: AsyncSession, item_id: int) -> GalleryItem:
    return _to_item(await _get_record(session, item_id))


async def set_premium(session: AsyncSession, item_id: int, value: bool) -> GalleryItem:
    record = await _get_record(session, item_id)
    record.is_premium = value
    await session.flush()
    return _to_item(record)


async def clear_all_premium(session: AsyncSession) -> int:
    """Un-premium every item. Returns rows changed (0 when nothing was premium)."""
    result = await session.execute(
        update(GalleryItemRecord)
        .where(GalleryItemRecord.is_premium == True)  # noqa: E712
        .values(is_premium=False)
    )
    return cast(CursorResult, result).rowcount


async def delete_item(session: AsyncSession, item_id: int) -> GalleryItem:
    """Delete a row and return it as it was. File removal is the caller's job."""
    record = await _get_record(session, item_id)
    item = _to_item(record)
    await session.delete(record)
    await session.flush()
    logger.info(f"Deleted gallery item {item_id}")
    return item


async def count_items(session: AsyncSession, item_type: GalleryType | None = None) -> int:
    query = select(func.count()).select_from(GalleryItemRecord)
    if item_type is not None:
        query = query.where(GalleryItemRecord.type == item_type.value)
    result = await session.execute(query)
    return int(result.scalar_one())
