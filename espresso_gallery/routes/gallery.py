"""Gallery and featured endpoints: upload, list, premium toggles, delete."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError

from espresso_gallery.auth import CurrentAuth
from espresso_gallery.db import get_session
from espresso_gallery.errors import DatabaseError, ValidationError
from espresso_gallery.gallery import store
from espresso_gallery.media import (
    GALLERY_UPLOAD,
    ArtifactStore,
    StoredArtifact,
    UploadPipeline,
    get_artifact_store,
)
from espresso_gallery.types import GalleryItem, GalleryType, NewGalleryItem, parse_flag

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["gallery"])

Store = Annotated[ArtifactStore, Depends(get_artifact_store)]

ALLOWED_TYPES = ", ".join(t.value for t in GalleryType)


class PremiumUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_premium: bool = Field(alias="isPremium")


def parse_item_id(raw: str) -> int:
    try:
        item_id = int(raw)
    except ValueError:
        item_id = 0
    if item_id <= 0:
        raise ValidationError("Invalid gallery item ID", code="INVALID_ID")
    return item_id


def parse_gallery_type(raw: str | None) -> GalleryType:
    if raw is None or raw == "":
        return GalleryType.GALLERY
    try:
        return GalleryType(raw.lower())
    except ValueError:
        raise ValidationError(
            f"Invalid type '{raw}'. Must be one of: {ALLOWED_TYPES}", code="INVALID_TYPE"
        ) from None


@router.get("/gallery")
async def list_gallery(
    type: Annotated[str | None, Query()] = None,
    premium: Annotated[str | None, Query()] = None,
) -> list[dict[str, Any]]:
    """List gallery or featured items, newest first. Public."""
    item_type = parse_gallery_type(type)

    premium_filter: bool | None = None
    if premium is not None and premium != "":
        premium_filter = parse_flag(premium)
        if premium_filter is None:
            raise ValidationError(
                f"Invalid premium filter '{premium}'. Use true or false", code="INVALID_PREMIUM"
            )

    try:
        async with get_session() as session:
            items = await store.list_by_type(session, item_type, premium_filter)
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Failed to list {item_type.value} items: {e}")
        return []

    return [item.to_json() for item in items]


async def _upload(
    item_type: GalleryType,
    image: UploadFile | None,
    artifacts: ArtifactStore,
    form: dict[str, str | None],
) -> dict[str, Any]:
    if image is None or not image.filename:
        raise ValidationError("No image file provided", code="NO_FILE")

    async def commit(artifact: StoredArtifact) -> GalleryItem:
        new_item = NewGalleryItem.from_form(url=artifact.url, type=item_type, **form)
        try:
            async with get_session() as session:
                return await store.insert_item(session, new_item)
        except SQLAlchemyError as e:
            raise DatabaseError("Database error while saving image", detail=str(e)) from e

    pipeline = UploadPipeline(artifacts, GALLERY_UPLOAD)
    item = await pipeline.ingest(image, "image", commit)
    return item.to_json()


@router.post(
    "/gallery",
    status_code=status.HTTP_201_CREATED,
    response_description="The stored gallery item",
)
async def upload_gallery_item(
    auth: CurrentAuth,
    artifacts: Store,
    image: Annotated[UploadFile | None, File()] = None,
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    tags: Annotated[str | None, Form()] = None,
    content_rating: Annotated[str | None, Form(alias="contentRating")] = None,
    is_premium: Annotated[str | None, Form(alias="isPremium")] = None,
    instagram: Annotated[str | None, Form()] = None,
    twitter: Annotated[str | None, Form()] = None,
    tiktok: Annotated[str | None, Form()] = None,
    onlyfans: Annotated[str | None, Form()] = None,
) -> dict[str, Any]:
    """Upload an image into the gallery collection.

    Responds **201 Created** (not 200) with the new item, including its
    `/uploads/processed_...jpg` url.
    """
    logger.info(f"Gallery upload by user {auth.user_id}")
    return await _upload(
        GalleryType.GALLERY,
        image,
        artifacts,
        dict(
            title=title,
            description=description,
            tags=tags,
            content_rating=content_rating,
            is_premium=is_premium,
            instagram=instagram,
            twitter=twitter,
            tiktok=tiktok,
            onlyfans=onlyfans,
        ),
    )


@router.post(
    "/featured",
    status_code=status.HTTP_201_CREATED,
    response_description="The stored featured item",
)
async def upload_featured_item(
    auth: CurrentAuth,
    artifacts: Store,
    image: Annotated[UploadFile | None, File()] = None,
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    tags: Annotated[str | None, Form()] = None,
    content_rating: Annotated[str | None, Form(alias="contentRating")] = None,
    is_premium: Annotated[str | None, Form(alias="isPremium")] = None,
    instagram: Annotated[str | None, Form()] = None,
    twitter: Annotated[str | None, Form()] = None,
    tiktok: Annotated[str | None, Form()] = None,
    onlyfans: Annotated[str | None, Form()] = None,
) -> dict[str, Any]:
    """Upload an image into the featured collection. Responds **201 Created**."""
    logger.info(f"Featured upload by user {auth.user_id}")
    return await _upload(
        GalleryType.FEATURED,
        image,
        artifacts,
        dict(
            title=title,
            description=description,
            tags=tags,
            content_rating=content_rating,
            is_premium=is_premium,
            instagram=instagram,
            twitter=twitter,
            tiktok=tiktok,
            onlyfans=onlyfans,
        ),
    )


@router.post("/gallery/remove-premium")
async def remove_all_premium(auth: CurrentAuth) -> dict[str, Any]:
    """Clear the premium flag on every item."""
    async with get_session() as session:
        updated = await store.clear_all_premium(session)

    logger.info(f"User {auth.user_id} removed premium status from {updated} items")
    return {
        "message": f"Successfully removed premium status from {updated} gallery items",
        "updatedCount": updated,
    }


@router.patch("/gallery/{item_id}/premium")
async def update_premium(item_id: str, body: PremiumUpdate, auth: CurrentAuth) -> dict[str, Any]:
    item_pk = parse_item_id(item_id)
    async with get_session() as session:
        item = await store.set_premium(session, item_pk, body.is_premium)

    logger.info(f"User {auth.user_id} set item {item_pk} premium={body.is_premium}")
    return {"message": "Gallery item updated", "updatedItem": item.to_json()}


@router.delete("/gallery/{item_id}")
async def delete_gallery_item(item_id: str, auth: CurrentAuth, artifacts: Store) -> dict[str, Any]:
    """Delete the row, then best-effort remove its file from both directories."""
    item_pk = parse_item_id(item_id)
    async with get_session() as session:
        item = await store.delete_item(session, item_pk)

    filename = artifacts.filename_from_url(item.url)
    if filename:
        removed = await artifacts.remove(filename)
        if removed == 0:
            logger.warning(f"No stored copies found for deleted item {item_pk} ({filename})")

    logger.info(f"User {auth.user_id} deleted gallery item {item_pk}")
    return {"message": "Gallery item deleted", "deletedItem": item.to_json()}
