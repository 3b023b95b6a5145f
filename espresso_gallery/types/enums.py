"""Enumerations shared by models, routes and the CLI."""

from enum import Enum


class Role(str, Enum):
    """User roles. A session carries exactly one."""

    ADMIN = "admin"
    CREATOR = "creator"
    FOLLOWER = "follower"


class GalleryType(str, Enum):
    """Which collection a gallery item belongs to."""

    GALLERY = "gallery"
    FEATURED = "featured"


class ContentRating(str, Enum):
    SFW = "sfw"
    NSFW = "nsfw"

    @classmethod
    def parse(cls, value: object) -> "ContentRating":
        """Anything other than an explicit 'nsfw' is treated as sfw."""
        if isinstance(value, str) and value.strip().lower() == cls.NSFW.value:
            return cls.NSFW
        return cls.SFW


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SubscriptionType(str, Enum):
    MONTHLY = "monthly"
    PER_POST = "per_post"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class ContentType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
