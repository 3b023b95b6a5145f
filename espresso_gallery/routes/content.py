"""Creator content: public feed, per-creator listing, posting and deletion."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError

from espresso_gallery.auth import CreatorAuth, CurrentAuth
from espresso_gallery.db import Content, get_session, repository
from espresso_gallery.errors import DatabaseError, Forbidden, NotFoundError, ValidationError
from espresso_gallery.media import (
    CONTENT_UPLOAD,
    ArtifactStore,
    StoredArtifact,
    UploadPipeline,
    get_artifact_store,
)
from espresso_gallery.types import ContentType, clean_text, parse_flag
from espresso_gallery.types.content import ContentOut, UserSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/content", tags=["content"])

MAX_PAGE_SIZE = 100


@router.get("/feed")
async def get_feed(
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 20,
) -> list[dict[str, Any]]:
    """Public (non-premium) content from all creators, newest first."""
    async with get_session() as session:
        rows = await repository.list_public_content(session, limit=limit, offset=(page - 1) * limit)
        return [
            ContentOut.model_validate(content)
            .model_copy(update={"creator": UserSummary.model_validate(user)})
            .to_json()
            for content, user in rows
        ]


@router.get("/creator/{creator_id}")
async def get_creator_content(creator_id: int, auth: CurrentAuth) -> list[dict[str, Any]]:
    """A creator's posts. Premium posts need a subscription, a purchase, ownership or admin."""
    async with get_session() as session:
        creator = await repository.get_user_by_id(session, creator_id)
        if creator is None:
            raise NotFoundError("Creator not found")

        full_access = auth.can_act_for(creator_id) or (
            await repository.get_active_subscription(session, auth.user_id, creator_id) is not None
        )
        rows = await repository.list_creator_content(session, creator_id, include_premium=True)
        purchased: set[int] = set()
        if not full_access:
            purchased = await repository.list_purchased_content_ids(
                session, auth.user_id, creator_id
            )

        summary = UserSummary.model_validate(creator)
        return [
            ContentOut.model_validate(c).model_copy(update={"creator": summary}).to_json()
            for c in rows
            if full_access or not c.is_premium or c.id in purchased
        ]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_content(
    auth: CreatorAuth,
    artifacts: Annotated[ArtifactStore, Depends(get_artifact_store)],
    file: Annotated[UploadFile | None, File()] = None,
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    is_premium: Annotated[str | None, Form(alias="isPremium")] = None,
    price: Annotated[float | None, Form()] = None,
) -> dict[str, Any]:
    """Post an image or mp4. Only approved creators may post. Responds 201 Created."""
    async with get_session() as session:
        profile = await repository.get_approved_creator(session, auth.user_id)
    if profile is None:
        raise Forbidden("Only approved creators can post content", code="CREATOR_NOT_APPROVED")

    if file is None or not file.filename:
        raise ValidationError("No file uploaded", code="NO_FILE")
    clean_title = clean_text(title)
    if clean_title is None:
        raise ValidationError("Title is required")
    if price is not None and price < 0:
        raise ValidationError("Price cannot be negative")

    premium = parse_flag(is_premium) is True
    is_video = not (file.content_type or "").lower().startswith("image/")

    async def commit(artifact: StoredArtifact) -> ContentOut:
        try:
            async with get_session() as session:
                content = await repository.create_content(
                    session,
                    creator_id=auth.user_id,
                    title=clean_title,
                    description=clean_text(description),
                    url=artifact.url,
                    content_type=(ContentType.VIDEO if is_video else ContentType.IMAGE).value,
                    is_premium=premium,
                    price=price if premium else None,
                )
                return ContentOut.model_validate(content)
        except SQLAlchemyError as e:
            raise DatabaseError("Error creating content", detail=str(e)) from e

    pipeline = UploadPipeline(artifacts, CONTENT_UPLOAD)
    if is_video:
        created = await pipeline.ingest_passthrough(file, "file", commit)
    else:
        created = await pipeline.ingest(file, "file", commit)

    logger.info(f"Creator {auth.user_id} posted content {created.id} ({created.content_type})")
    return created.to_json()


@router.delete("/{content_id}")
async def delete_content(
    content_id: int,
    auth: CurrentAuth,
    artifacts: Annotated[ArtifactStore, Depends(get_artifact_store)],
) -> dict[str, str]:
    async with get_session() as session:
        content: Content | None = await repository.get_content(session, content_id)
        if content is None:
            raise NotFoundError("Content not found")
        if not auth.can_act_for(content.creator_id):
            raise Forbidden("Not authorized to delete this content")
        url, thumbnail_url = content.url, content.thumbnail_url
        await repository.delete_content(session, content_id)

    for stored_url in (url, thumbnail_url):
        filename = artifacts.filename_from_url(stored_url)
        if filename:
            await artifacts.remove(filename)

    logger.info(f"User {auth.user_id} deleted content {content_id}")
    return {"message": "Content deleted successfully"}
