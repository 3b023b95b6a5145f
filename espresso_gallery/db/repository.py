"""Repository layer for database CRUD operations.

Gallery items live in ``espresso_gallery.gallery.store``; everything else the
routes and CLI touch is here.
"""

from datetime import UTC, datetime, timedelta
from typing import cast

from sqlalchemy import CursorResult, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from espresso_gallery.db.models import (
    Content,
    ContentPurchase,
    CreatorProfile,
    FollowerProfile,
    Subscription,
    User,
    UserSession,
)
from espresso_gallery.types import ApprovalStatus, Role, SubscriptionStatus, SubscriptionType


def ensure_utc(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware (SQLite stores naive datetimes)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# =============================================================================
# User Repository
# =============================================================================


async def create_user(
    session: AsyncSession,
    email: str,
    password_hash: str,
    role: Role = Role.FOLLOWER,
    username: str | None = None,
    display_name: str | None = None,
) -> User:
    """Create a new user."""
    user = User(
        email=email,
        password_hash=password_hash,
        role=role.value,
        username=username,
        display_name=display_name,
    )
    session.add(user)
    await session.flush()
    return user


async def get_user_by_id(session: AsyncSession, user_id: int) -> User | None:
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


async def get_user_by_username(session: AsyncSession, username: str) -> User | None:
    result = await session.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def list_users(session: AsyncSession, role: Role | None = None) -> list[User]:
    """List users ordered by id, optionally restricted to one role."""
    query = select(User).order_by(User.id)
    if role is not None:
        query = query.where(User.role == role.value)
    result = await session.execute(query)
    return list(result.scalars().all())


async def get_users_by_ids(session: AsyncSession, user_ids: set[int]) -> dict[int, User]:
    if not user_ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(user_ids)))
    return {u.id: u for u in result.scalars().all()}


async def set_user_password(session: AsyncSession, user: User, password_hash: str) -> None:
    user.password_hash = password_hash
    await session.flush()


# =============================================================================
# Profile Repository
# =============================================================================


async def create_creator_profile(
    session: AsyncSession, user_id: int, alias_name: str | None = None
) -> CreatorProfile:
    profile = CreatorProfile(user_id=user_id, alias_name=alias_name)
    session.add(profile)
    await session.flush()
    return profile


async def create_follower_profile(session: AsyncSession, user_id: int) -> FollowerProfile:
    profile = FollowerProfile(user_id=user_id, preferences={})
    session.add(profile)
    await session.flush()
    return profile


async def get_creator_profile(session: AsyncSession, user_id: int) -> CreatorProfile | None:
    result = await session.execute(select(CreatorProfile).where(CreatorProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def get_approved_creator(session: AsyncSession, user_id: int) -> CreatorProfile | None:
    """Creator profile for ``user_id`` only if it has been approved."""
    result = await session.execute(
        select(CreatorProfile).where(
            CreatorProfile.user_id == user_id,
            CreatorProfile.approval_status == ApprovalStatus.APPROVED.value,
        )
    )
    return result.scalar_one_or_none()


async def list_creator_profiles(
    session: AsyncSession, statuses: list[ApprovalStatus] | None = None
) -> list[CreatorProfile]:
    """List creator profiles (user joined), newest first."""
    query = select(CreatorProfile).order_by(
        CreatorProfile.created_at.desc(), CreatorProfile.id.desc()
    )
    if statuses:
        query = query.where(CreatorProfile.approval_status.in_([s.value for s in statuses]))
    result = await session.execute(query)
    return list(result.unique().scalars().all())


async def list_follower_profiles(session: AsyncSession) -> list[FollowerProfile]:
    result = await session.execute(select(FollowerProfile).order_by(FollowerProfile.id))
    return list(result.unique().scalars().all())


async def set_creator_approval(
    session: AsyncSession,
    user_id: int,
    approved: bool,
    approved_by: int | None = None,
    rejection_reason: str | None = None,
) -> CreatorProfile:
    """Approve or reject a creator, creating the profile row if it is missing."""
    profile = await get_creator_profile(session, user_id)
    if profile is None:
        profile = CreatorProfile(user_id=user_id)
        session.add(profile)

    if approved:
        profile.approval_status = ApprovalStatus.APPROVED.value
        profile.approval_date = datetime.now(UTC)
        profile.approved_by = approved_by
        profile.rejection_reason = None
    else:
        profile.approval_status = ApprovalStatus.REJECTED.value
        profile.approval_date = None
        profile.approved_by = None
        profile.rejection_reason = rejection_reason

    await session.flush()
    return profile


async def set_featured_image(session: AsyncSession, user_id: int, url: str) -> CreatorProfile:
    """Point a creator's featured image at ``url``. Returns the profile."""
    profile = await get_creator_profile(session, user_id)
    if profile is None:
        profile = CreatorProfile(user_id=user_id)
        session.add(profile)
    profile.featured_image_url = url
    await session.flush()
    return profile


# =============================================================================
# Session Repository
# =============================================================================


async def create_session(
    session: AsyncSession, token: str, user: User, ttl: timedelta
) -> UserSession:
    now = datetime.now(UTC)
    row = UserSession(
        token=token,
        user_id=user.id,
        role=user.role,
        created_at=now,
        last_seen_at=now,
        expires_at=now + ttl,
    )
    session.add(row)
    await session.flush()
    return row


async def get_session_by_token(session: AsyncSession, token: str) -> UserSession | None:
    result = await session.execute(select(UserSession).where(UserSession.token == token))
    return result.scalar_one_or_none()


async def touch_session(session: AsyncSession, token: str, ttl: timedelta) -> datetime:
    """Slide the expiry of a session forward. Returns the new expiry."""
    now = datetime.now(UTC)
    expires_at = now + ttl
    await session.execute(
        update(UserSession)
        .where(UserSession.token == token)
        .values(last_seen_at=now, expires_at=expires_at)
    )
    return expires_at


async def delete_session(session: AsyncSession, token: str) -> bool:
    """Delete a session. Returns True if it existed."""
    result = await session.execute(delete(UserSession).where(UserSession.token == token))
    return cast(CursorResult, result).rowcount > 0


async def cleanup_expired_sessions(session: AsyncSession) -> int:
    """Delete sessions past their expiry. Returns count deleted."""
    result = await session.execute(
        delete(UserSession).where(UserSession.expires_at < datetime.now(UTC))
    )
    return cast(CursorResult, result).rowcount


# =============================================================================
# Content Repository
# =============================================================================


async def create_content(
    session: AsyncSession,
    creator_id: int,
    title: str,
    url: str,
    content_type: str,
    description: str | None = None,
    is_premium: bool = False,
    price: float | None = None,
    thumbnail_url: str | None = None,
) -> Content:
    content = Content(
        creator_id=creator_id,
        title=title,
        url=url,
        content_type=content_type,
        description=description,
        is_premium=is_premium,
        price=price,
        thumbnail_url=thumbnail_url,
    )
    session.add(content)
    await session.flush()
    return content


async def get_content(session: AsyncSession, content_id: int) -> Content | None:
    result = await session.execute(select(Content).where(Content.id == content_id))
    return result.scalar_one_or_none()


async def list_public_content(
    session: AsyncSession, limit: int, offset: int
) -> list[tuple[Content, User]]:
    """Non-premium content across all creators with its creator, newest first."""
    result = await session.execute(
        select(Content, User)
        .join(User, User.id == Content.creator_id)
        .where(Content.is_premium == False)  # noqa: E712
        .order_by(Content.created_at.desc(), Content.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return [(content, user) for content, user in result.all()]


async def list_creator_content(
    session: AsyncSession, creator_id: int, include_premium: bool
) -> list[Content]:
    query = select(Content).where(Content.creator_id == creator_id)
    if not include_premium:
        query = query.where(Content.is_premium == False)  # noqa: E712
    result = await session.execute(query.order_by(Content.created_at.desc(), Content.id.desc()))
    return list(result.scalars().all())


async def delete_content(session: AsyncSession, content_id: int) -> bool:
    result = await session.execute(delete(Content).where(Content.id == content_id))
    return cast(CursorResult, result).rowcount > 0


async def list_media_urls(session: AsyncSession) -> list[str]:
    """Stored file URLs outside the gallery table: content, thumbnails, profile images."""
    urls: list[str] = []
    content_rows = await session.execute(select(Content.url, Content.thumbnail_url))
    for url, thumbnail_url in content_rows.all():
        urls.extend(u for u in (url, thumbnail_url) if u)
    profile_rows = await session.execute(
        select(CreatorProfile.featured_image_url).where(
            CreatorProfile.featured_image_url.is_not(None)
        )
    )
    urls.extend(profile_rows.scalars().all())
    avatar_rows = await session.execute(select(User.avatar_url).where(User.avatar_url.is_not(None)))
    urls.extend(avatar_rows.scalars().all())
    return urls


# =============================================================================
# Subscription Repository
# =============================================================================


async def get_active_subscription(
    session: AsyncSession, follower_id: int, creator_id: int
) -> Subscription | None:
    """Active, unexpired subscription from follower to creator, if any."""
    now = datetime.now(UTC)
    result = await session.execute(
        select(Subscription)
        .where(
            Subscription.follower_id == follower_id,
            Subscription.creator_id == creator_id,
            Subscription.status == SubscriptionStatus.ACTIVE.value,
            or_(Subscription.end_date.is_(None), Subscription.end_date > now),
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def create_subscription(
    session: AsyncSession,
    follower_id: int,
    creator_id: int,
    sub_type: SubscriptionType,
    amount: float,
    period: timedelta | None,
) -> Subscription:
    """Open a subscription. ``period`` None means open-ended (per-post)."""
    now = datetime.now(UTC)
    subscription = Subscription(
        follower_id=follower_id,
        creator_id=creator_id,
        type=sub_type.value,
        amount=amount,
        start_date=now,
        end_date=now + period if period is not None else None,
        status=SubscriptionStatus.ACTIVE.value,
    )
    session.add(subscription)
    await session.flush()
    return subscription


async def expire_lapsed_subscriptions(session: AsyncSession, follower_id: int | None = None) -> int:
    """Flip active subscriptions whose end date has passed to expired."""
    query = update(Subscription).where(
        Subscription.status == SubscriptionStatus.ACTIVE.value,
        Subscription.end_date.is_not(None),
        Subscription.end_date <= datetime.now(UTC),
    )
    if follower_id is not None:
        query = query.where(Subscription.follower_id == follower_id)
    result = await session.execute(query.values(status=SubscriptionStatus.EXPIRED.value))
    return cast(CursorResult, result).rowcount


async def list_active_subscriptions(session: AsyncSession, follower_id: int) -> list[Subscription]:
    now = datetime.now(UTC)
    result = await session.execute(
        select(Subscription)
        .where(
            Subscription.follower_id == follower_id,
            Subscription.status == SubscriptionStatus.ACTIVE.value,
            or_(Subscription.end_date.is_(None), Subscription.end_date > now),
        )
        .order_by(Subscription.start_date.desc(), Subscription.id.desc())
    )
    return list(result.scalars().all())


async def get_subscription_for_follower(
    session: AsyncSession, subscription_id: int, follower_id: int
) -> Subscription | None:
    result = await session.execute(
        select(Subscription).where(
            Subscription.id == subscription_id,
            Subscription.follower_id == follower_id,
        )
    )
    return result.scalar_one_or_none()


async def cancel_subscription(session: AsyncSession, subscription: Subscription) -> Subscription:
    subscription.status = SubscriptionStatus.CANCELLED.value
    subscription.end_date = datetime.now(UTC)
    await session.flush()
    return subscription


# =============================================================================
# Purchase Repository
# =============================================================================


async def get_purchase(
    session: AsyncSession, content_id: int, follower_id: int
) -> ContentPurchase | None:
    result = await session.execute(
        select(ContentPurchase).where(
            ContentPurchase.content_id == content_id,
            ContentPurchase.follower_id == follower_id,
        )
    )
    return result.scalar_one_or_none()


async def create_purchase(
    session: AsyncSession, content_id: int, follower_id: int, amount: float
) -> ContentPurchase:
    purchase = ContentPurchase(content_id=content_id, follower_id=follower_id, amount=amount)
    session.add(purchase)
    await session.flush()
    return purchase


async def list_purchased_content_ids(
    session: AsyncSession, follower_id: int, creator_id: int
) -> set[int]:
    """Ids of ``creator_id``'s content that ``follower_id`` has bought."""
    result = await session.execute(
        select(ContentPurchase.content_id)
        .join(Content, Content.id == ContentPurchase.content_id)
        .where(ContentPurchase.follower_id == follower_id, Content.creator_id == creator_id)
    )
    return set(result.scalars().all())
