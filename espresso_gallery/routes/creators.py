"""Creator profiles: listing, detail, admin approval and featured image."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from espresso_gallery.auth import AdminAuth, CurrentAuth, OptionalAuth
from espresso_gallery.db import User, get_session, repository
from espresso_gallery.errors import DatabaseError, Forbidden, NotFoundError, ValidationError
from espresso_gallery.media import (
    PROFILE_IMAGE_UPLOAD,
    ArtifactStore,
    StoredArtifact,
    UploadPipeline,
    get_artifact_store,
)
from espresso_gallery.types import ApprovalStatus, Role
from espresso_gallery.types.content import CreatorDetail, CreatorProfileOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/creators", tags=["creators"])


class ApprovalUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    approved: bool
    rejection_reason: str | None = Field(default=None, alias="rejectionReason", max_length=1000)


async def _get_creator_user(session: AsyncSession, creator_id: int) -> User:
    user = await repository.get_user_by_id(session, creator_id)
    if user is None or user.role != Role.CREATOR.value:
        raise NotFoundError("Creator not found")
    return user


@router.get("")
async def list_creators(auth: OptionalAuth) -> list[dict[str, Any]]:
    """Approved and pending creators with user info. Anonymous callers get []."""
    if auth is None:
        return []

    try:
        async with get_session() as session:
            profiles = await repository.list_creator_profiles(
                session, [ApprovalStatus.APPROVED, ApprovalStatus.PENDING]
            )
            return [CreatorProfileOut.model_validate(p).to_json() for p in profiles]
    except SQLAlchemyError as e:
        logger.error(f"Failed to list creators: {e}")
        return []


@router.get("/{creator_id}")
async def get_creator(creator_id: int, auth: CurrentAuth) -> dict[str, Any]:
    """Creator detail, visible to the creator themselves and admins."""
    if not auth.can_act_for(creator_id):
        raise Forbidden("Forbidden")

    async with get_session() as session:
        user = await _get_creator_user(session, creator_id)
        profile = await repository.get_creator_profile(session, creator_id)

    detail = CreatorDetail(
        id=user.id,
        email=user.email,
        username=user.username,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
        bio=user.bio,
        verified=user.verified,
        created_at=user.created_at,
    )
    if profile is not None:
        detail = detail.model_copy(
            update={
                "approved": profile.approval_status == ApprovalStatus.APPROVED.value,
                "approval_status": profile.approval_status,
                "instagram": profile.instagram,
                "twitter": profile.twitter,
                "tiktok": profile.tiktok,
                "onlyfans": profile.onlyfans,
                "featured_image_url": profile.featured_image_url,
                "monthly_subscription_price": profile.monthly_subscription_price,
                "per_post_price": profile.per_post_price,
            }
        )
    return detail.to_json()


@router.patch("/{creator_id}/approval")
async def update_approval(creator_id: int, body: ApprovalUpdate, auth: AdminAuth) -> dict[str, Any]:
    """Approve or reject a creator. Creates the profile row if it is missing."""
    async with get_session() as session:
        await _get_creator_user(session, creator_id)
        profile = await repository.set_creator_approval(
            session,
            creator_id,
            approved=body.approved,
            approved_by=auth.user_id,
            rejection_reason=body.rejection_reason,
        )
        status_value = profile.approval_status

    logger.info(f"Admin {auth.user_id} set creator {creator_id} to {status_value}")
    return {"success": True, "approvalStatus": status_value}


@router.post("/{creator_id}/featured-image")
async def upload_featured_image(
    creator_id: int,
    auth: CurrentAuth,
    artifacts: Annotated[ArtifactStore, Depends(get_artifact_store)],
    image: Annotated[UploadFile | None, File()] = None,
) -> dict[str, Any]:
    """Replace a creator's featured image (owner or admin)."""
    if not auth.can_act_for(creator_id):
        raise Forbidden("Forbidden")
    if image is None or not image.filename:
        raise ValidationError("No image file provided", code="NO_FILE")

    async with get_session() as session:
        await _get_creator_user(session, creator_id)
        profile = await repository.get_creator_profile(session, creator_id)
        previous_url = profile.featured_image_url if profile else None

    async def commit(artifact: StoredArtifact) -> str:
        try:
            async with get_session() as session:
                await repository.set_featured_image(session, creator_id, artifact.url)
        except SQLAlchemyError as e:
            raise DatabaseError("Database error while saving image", detail=str(e)) from e
        return artifact.url

    pipeline = UploadPipeline(artifacts, PROFILE_IMAGE_UPLOAD)
    url = await pipeline.ingest(image, "image", commit)

    old_filename = artifacts.filename_from_url(previous_url)
    if old_filename:
        await artifacts.remove(old_filename)

    logger.info(f"Featured image for creator {creator_id} set to {url}")
    return {"message": "Featured image updated", "featuredImageUrl": url}
