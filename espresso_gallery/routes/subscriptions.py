"""Subscriptions and one-off content purchases.

No money moves: rows record the creator's list price at the time of the action.
"""

import logging
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from espresso_gallery.auth import CurrentAuth
from espresso_gallery.db import get_session, repository
from espresso_gallery.errors import NotFoundError, ValidationError
from espresso_gallery.types import SubscriptionType
from espresso_gallery.types.content import PurchaseOut, SubscriptionOut, UserSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])

MONTHLY_PERIOD = timedelta(days=30)


class SubscribeRequest(BaseModel):
    type: SubscriptionType


@router.get("/my")
async def my_subscriptions(auth: CurrentAuth) -> list[dict[str, Any]]:
    """Active, unexpired subscriptions. Lapsed monthly rows are marked expired first."""
    async with get_session() as session:
        expired = await repository.expire_lapsed_subscriptions(session, auth.user_id)
        if expired:
            logger.info(f"Marked {expired} subscription(s) expired for user {auth.user_id}")

        subscriptions = await repository.list_active_subscriptions(session, auth.user_id)
        creators = await repository.get_users_by_ids(session, {s.creator_id for s in subscriptions})

        results = []
        for sub in subscriptions:
            out = SubscriptionOut.model_validate(sub)
            creator = creators.get(sub.creator_id)
            if creator is not None:
                out = out.model_copy(update={"creator": UserSummary.model_validate(creator)})
            results.append(out.to_json())
        return results


@router.post("/subscribe/{creator_id}", status_code=status.HTTP_201_CREATED)
async def subscribe(creator_id: int, body: SubscribeRequest, auth: CurrentAuth) -> dict[str, Any]:
    async with get_session() as session:
        creator = await repository.get_approved_creator(session, creator_id)
        if creator is None:
            raise NotFoundError("Creator not found or not approved")

        if await repository.get_active_subscription(session, auth.user_id, creator_id):
            raise ValidationError("Already subscribed to this creator", code="ALREADY_SUBSCRIBED")

        if body.type is SubscriptionType.MONTHLY:
            amount, period = creator.monthly_subscription_price, MONTHLY_PERIOD
        else:
            amount, period = creator.per_post_price, None

        subscription = await repository.create_subscription(
            session,
            follower_id=auth.user_id,
            creator_id=creator_id,
            sub_type=body.type,
            amount=amount or 0.0,
            period=period,
        )
        out = SubscriptionOut.model_validate(subscription)

    logger.info(f"User {auth.user_id} subscribed to creator {creator_id} ({body.type.value})")
    return out.to_json()


@router.post("/purchase/{content_id}", status_code=status.HTTP_201_CREATED)
async def purchase(content_id: int, auth: CurrentAuth) -> dict[str, Any]:
    try:
        async with get_session() as session:
            content = await repository.get_content(session, content_id)
            if content is None or not content.is_premium:
                raise NotFoundError("Premium content not found")

            if await repository.get_purchase(session, content_id, auth.user_id):
                raise ValidationError("Content already purchased", code="ALREADY_PURCHASED")

            row = await repository.create_purchase(
                session, content_id, auth.user_id, amount=content.price or 0.0
            )
            out = PurchaseOut.model_validate(row)
    except IntegrityError as e:
        raise ValidationError("Content already purchased", code="ALREADY_PURCHASED") from e

    logger.info(f"User {auth.user_id} purchased content {content_id}")
    return out.to_json()


@router.post("/cancel/{subscription_id}")
async def cancel(subscription_id: int, auth: CurrentAuth) -> dict[str, str]:
    async with get_session() as session:
        subscription = await repository.get_subscription_for_follower(
            session, subscription_id, auth.user_id
        )
        if subscription is None:
            raise NotFoundError("Subscription not found")
        await repository.cancel_subscription(session, subscription)

    logger.info(f"User {auth.user_id} cancelled subscription {subscription_id}")
    return {"message": "Subscription cancelled successfully"}
