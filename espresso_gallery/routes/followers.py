"""Follower listing for admins."""

import logging
from typing import Any

from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError

from espresso_gallery.auth import OptionalAdminAuth
from espresso_gallery.db import get_session, repository
from espresso_gallery.types.content import FollowerProfileOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/followers", tags=["followers"])


@router.get("")
async def list_followers(auth: OptionalAdminAuth) -> list[dict[str, Any]]:
    """Follower profiles with user info. Anonymous callers get []; non-admins 403."""
    if auth is None:
        return []

    try:
        async with get_session() as session:
            profiles = await repository.list_follower_profiles(session)
            return [FollowerProfileOut.model_validate(p).to_json() for p in profiles]
    except SQLAlchemyError as e:
        logger.error(f"Failed to list followers: {e}")
        return []
