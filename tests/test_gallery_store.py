"""Tests for the gallery record store."""

from __future__ import annotations

import pytest
from sqlalchemy import insert

from espresso_gallery.db import GalleryItemRecord, get_session
from espresso_gallery.errors import NotFoundError
from espresso_gallery.gallery import store
from espresso_gallery.types import ContentRating, GalleryType, NewGalleryItem


@pytest.fixture(autouse=True)
def _schema(sync_engine) -> None:
    """Every test here gets an empty schema."""


def _new(title: str, item_type: GalleryType = GalleryType.GALLERY, **kwargs) -> NewGalleryItem:
    return NewGalleryItem(
        url=f"/uploads/processed_1_{title}.jpg", type=item_type, title=title, **kwargs
    )


class TestInsertAndList:
    async def test_insert_assigns_id_and_timestamp(self) -> None:
        async with get_session() as session:
            item = await store.insert_item(
                session, _new("first", tags=["a", "b"], content_rating=ContentRating.NSFW)
            )

        assert item.id > 0
        assert item.created_at
        assert item.tags == ["a", "b"]
        assert item.content_rating is ContentRating.NSFW
        assert item.is_premium is False

    async def test_list_newest_first_by_type(self) -> None:
        async with get_session() as session:
            first = await store.insert_item(session, _new("one"))
            second = await store.insert_item(session, _new("two"))
            await store.insert_item(session, _new("feat", GalleryType.FEATURED))

        async with get_session() as session:
            items = await store.list_by_type(session, GalleryType.GALLERY)
            featured = await store.list_by_type(session, GalleryType.FEATURED)

        assert [i.id for i in items] == [second.id, first.id]
        assert [i.title for i in featured] == ["feat"]

    async def test_premium_filter(self) -> None:
        async with get_session() as session:
            await store.insert_item(session, _new("free"))
            await store.insert_item(session, _new("paid", is_premium=True))

        async with get_session() as session:
            premium = await store.list_by_type(session, GalleryType.GALLERY, premium=True)
            free = await store.list_by_type(session, GalleryType.GALLERY, premium=False)

        assert [i.title for i in premium] == ["paid"]
        assert [i.title for i in free] == ["free"]

    async def test_count_items(self) -> None:
        async with get_session() as session:
            await store.insert_item(session, _new("one"))
            await store.insert_item(session, _new("two", GalleryType.FEATURED))

        async with get_session() as session:
            assert await store.count_items(session) == 2
            assert await store.count_items(session, GalleryType.FEATURED) == 1


class TestMutations:
    async def test_set_premium(self) -> None:
        async with get_session() as session:
            item = await store.insert_item(session, _new("x"))

        async with get_session() as session:
            updated = await store.set_premium(session, item.id, True)
        assert updated.is_premium is True

        async with get_session() as session:
            [stored] = await store.list_by_type(session, GalleryType.GALLERY)
        assert stored.is_premium is True

    async def test_clear_all_premium_counts_changed_rows(self) -> None:
        async with get_session() as session:
            await store.insert_item(session, _new("a", is_premium=True))
            await store.insert_item(session, _new("b", is_premium=True))
            await store.insert_item(session, _new("c"))

        async with get_session() as session:
            assert await store.clear_all_premium(session) == 2
        async with get_session() as session:
            assert await store.clear_all_premium(session) == 0
            assert await store.list_by_type(session, GalleryType.GALLERY, premium=True) == []

    async def test_delete_returns_prior_state(self) -> None:
        async with get_session() as session:
            item = await store.insert_item(session, _new("gone", is_premium=True))

        async with get_session() as session:
            deleted = await store.delete_item(session, item.id)
        assert deleted.title == "gone"
        assert deleted.is_premium is True

        async with get_session() as session:
            assert await store.list_by_type(session, GalleryType.GALLERY) == []
            with pytest.raises(NotFoundError):
                await store.delete_item(session, item.id)

    async def test_missing_item(self) -> None:
        async with get_session() as session:
            with pytest.raises(NotFoundError) as exc_info:
                await store.set_premium(session, 999, True)
        assert exc_info.value.message == "Gallery item not found"

        async with get_session() as session:
            with pytest.raises(NotFoundError):
                await store.get_item(session, 999)


class TestLegacyRows:
    async def test_double_encoded_tags_and_bare_path(self) -> None:
        async with get_session() as session:
            await session.execute(
                insert(GalleryItemRecord).values(
                    url="uploads\\old_photo.jpg",
                    title="",
                    type="gallery",
                    content_rating="NSFW",
                    is_premium=False,
                    tags='"[\\"x\\", 3, \\"y\\"]"',
                    created_at="2023-01-01T00:00:00Z",
                )
            )

        async with get_session() as session:
            [item] = await store.list_by_type(session, GalleryType.GALLERY)

        assert item.url == "/uploads/old_photo.jpg"
        assert item.title == "Featured Model"
        assert item.tags == ["x", "y"]
        assert item.content_rating is ContentRating.NSFW
