"""Database module for Espresso Gallery."""

from espresso_gallery.db import repository
from espresso_gallery.db.engine import async_session_factory, engine, get_session
from espresso_gallery.db.models import (
    Base,
    Content,
    ContentPurchase,
    CreatorProfile,
    FollowerProfile,
    GalleryItemRecord,
    Subscription,
    User,
    UserSession,
)

__all__ = [
    "Base",
    "Content",
    "ContentPurchase",
    "CreatorProfile",
    "FollowerProfile",
    "GalleryItemRecord",
    "Subscription",
    "User",
    "UserSession",
    "engine",
    "async_session_factory",
    "get_session",
    "repository",
]
