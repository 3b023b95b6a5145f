"""Response models for creators, followers, content and subscriptions."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """camelCase on the wire, built from ORM objects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class UserSummary(ApiModel):
    id: int
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None


class UserInfo(UserSummary):
    email: str
    role: str
    bio: str | None = None
    created_at: datetime | None = None


class CreatorProfileOut(ApiModel):
    id: int
    user_id: int
    alias_name: str | None = None
    instagram: str | None = None
    twitter: str | None = None
    tiktok: str | None = None
    onlyfans: str | None = None
    featured_image_url: str | None = None
    monthly_subscription_price: float | None = None
    per_post_price: float | None = None
    approval_status: str
    approval_date: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime | None = None
    user: UserInfo | None = None


class CreatorDetail(ApiModel):
    """A creator user merged with their profile."""

    id: int
    email: str
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    verified: bool = False
    approved: bool = False
    approval_status: str | None = None
    created_at: datetime | None = None
    instagram: str | None = None
    twitter: str | None = None
    tiktok: str | None = None
    onlyfans: str | None = None
    featured_image_url: str | None = None
    monthly_subscription_price: float | None = None
    per_post_price: float | None = None


class FollowerProfileOut(ApiModel):
    id: int
    user_id: int
    preferences: dict[str, Any] = {}
    created_at: datetime | None = None
    user: UserInfo | None = None


class ContentOut(ApiModel):
    id: int
    creator_id: int
    title: str
    description: str | None = None
    content_type: str
    url: str
    thumbnail_url: str | None = None
    is_premium: bool
    price: float | None = None
    created_at: datetime
    updated_at: datetime
    creator: UserSummary | None = None


class SubscriptionOut(ApiModel):
    id: int
    follower_id: int
    creator_id: int
    type: str
    start_date: datetime
    end_date: datetime | None = None
    amount: float
    status: str
    creator: UserSummary | None = None


class PurchaseOut(ApiModel):
    id: int
    content_id: int
    follower_id: int
    amount: float
    purchase_date: datetime
