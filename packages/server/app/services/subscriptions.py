"""
Subscription store: persistence of subscription records.

One row per (channel_address, identity_id). Uniqueness of the pair and of
(channel_address, public_key) is enforced by the database; violations surface
as ``ConflictError`` so callers can turn them into their own duplicate errors.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import ConflictError, StorageError
from app.models.subscription import Subscription

log = structlog.get_logger()

# Columns a patch may never touch
IMMUTABLE_FIELDS = frozenset({"channel_address", "identity_id", "type"})


async def get_subscription(
    channel_address: str, identity_id: str, session: AsyncSession
) -> Optional[Subscription]:
    try:
        result = await session.execute(
            select(Subscription).where(
                Subscription.channel_address == channel_address,
                Subscription.identity_id == identity_id,
            )
        )
    except SQLAlchemyError as exc:
        raise StorageError("failed to read subscription") from exc
    return result.scalar_one_or_none()


async def get_subscription_by_public_key(
    channel_address: str, public_key: str, session: AsyncSession
) -> Optional[Subscription]:
    try:
        result = await session.execute(
            select(Subscription).where(
                Subscription.channel_address == channel_address,
                Subscription.public_key == public_key,
            )
        )
    except SQLAlchemyError as exc:
        raise StorageError("failed to read subscription") from exc
    return result.scalars().first()


async def get_subscriptions(
    channel_address: str,
    is_authorized: Optional[bool],
    session: AsyncSession,
) -> list[Subscription]:
    """List the subscriptions of a channel; ``is_authorized=None`` means all."""
    query = select(Subscription).where(Subscription.channel_address == channel_address)
    if is_authorized is not None:
        query = query.where(Subscription.is_authorized == is_authorized)
    query = query.order_by(Subscription.created_at)
    try:
        result = await session.execute(query)
    except SQLAlchemyError as exc:
        raise StorageError("failed to list subscriptions") from exc
    return list(result.scalars().all())


async def add_subscription(subscription: Subscription, session: AsyncSession) -> Subscription:
    """Insert a subscription. Raises ConflictError on a duplicate key."""
    session.add(subscription)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        log.warning(
            "subscription.store_conflict",
            channel_address=subscription.channel_address,
            identity_id=subscription.identity_id,
        )
        raise ConflictError("subscription violates a uniqueness constraint") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StorageError("failed to add subscription") from exc
    return subscription


async def update_subscription(
    subscription: Subscription, patch: dict[str, Any], session: AsyncSession
) -> Subscription:
    """Merge ``patch`` into a stored subscription, skipping immutable fields."""
    for key, value in patch.items():
        if key in IMMUTABLE_FIELDS:
            continue
        setattr(subscription, key, value)
    session.add(subscription)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError("subscription update violates a uniqueness constraint") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StorageError("failed to update subscription") from exc
    return subscription


async def delete_subscription(subscription: Subscription, session: AsyncSession) -> None:
    try:
        await session.delete(subscription)
        await session.flush()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StorageError("failed to delete subscription") from exc
