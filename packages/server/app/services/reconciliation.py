"""
Subscription reconciliation: how a subscription moves from "requested" to
"authorized" and who may change it.

Three pieces of state are kept in step here:

- the subscriber handle held by the streams gateway (ledger side),
- the subscription row (authoritative for "does a subscription exist"),
- the channel info subscriber list (advisory).

There is no transaction spanning them. Requesting a subscription mints the
ledger handle first; if a later step fails the handle is left behind on the
gateway (it has no undo). A failure after the row is written but before the
subscriber list is updated leaves the list stale until the next sweep.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    AlreadyRequestedError,
    ConflictError,
    DuplicatePublicKeyError,
    DuplicateSubscriptionError,
    LedgerError,
    NotFoundError,
    SubscriptionRequestError,
    UnauthorizedError,
    ValidationError,
)
from app.core.streams import StreamsClient, SubscriptionHandle
from app.models.subscription import Subscription
from app.services import channel_info as channel_info_store
from app.services import subscriptions as subscription_store
from channel_hub_shared.schemas.common import AccessRights, SubscriptionType
from channel_hub_shared.schemas.subscriptions import RequestSubscriptionResponse

log = structlog.get_logger()

NON_NULLABLE_FIELDS = ("access_rights", "is_authorized", "state")


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------

async def can_mutate(
    channel_address: str,
    acting_identity_id: str,
    target_identity_id: str,
    session: AsyncSession,
) -> bool:
    """True if the actor is the channel's author or the subscription's own identity.

    A channel without channel info has no author, so only self-mutation is allowed.
    """
    if acting_identity_id == target_identity_id:
        return True
    info = await channel_info_store.find_channel_info(channel_address, session)
    return info is not None and info.author_id == acting_identity_id


# ---------------------------------------------------------------------------
# Record construction
# ---------------------------------------------------------------------------

def _preshared_key_subscription(
    channel_address: str, identity_id: str, handle: SubscriptionHandle, state: str
) -> Subscription:
    # Preshared keys admit auditors only, authorized up front; the channel
    # address doubles as keyload link since there is no key exchange.
    return Subscription(
        type=SubscriptionType.SUBSCRIBER.value,
        channel_address=channel_address,
        identity_id=identity_id,
        access_rights=AccessRights.AUDIT.value,
        is_authorized=True,
        keyload_link=channel_address,
        psk_id=handle.psk_id,
        subscription_link=handle.subscription_link,
        state=state,
    )


def _public_key_subscription(
    channel_address: str,
    identity_id: str,
    access_rights: AccessRights,
    handle: SubscriptionHandle,
    state: str,
) -> Subscription:
    return Subscription(
        type=SubscriptionType.SUBSCRIBER.value,
        channel_address=channel_address,
        identity_id=identity_id,
        access_rights=AccessRights(access_rights).value,
        is_authorized=False,
        public_key=handle.public_key,
        subscription_link=handle.subscription_link,
        state=state,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_subscriptions(
    channel_address: str, is_authorized: Optional[bool], session: AsyncSession
) -> list[Subscription]:
    if not channel_address:
        raise ValidationError("no channelAddress provided")
    return await subscription_store.get_subscriptions(channel_address, is_authorized, session)


async def get_subscription(
    channel_address: str, identity_id: str, session: AsyncSession
) -> Optional[Subscription]:
    if not channel_address or not identity_id:
        raise ValidationError("no channelAddress or identityId provided")
    return await subscription_store.get_subscription(channel_address, identity_id, session)


async def get_subscription_by_public_key(
    channel_address: str, public_key: str, session: AsyncSession
) -> Optional[Subscription]:
    if not channel_address or not public_key:
        raise ValidationError("no channelAddress or publicKey provided")
    return await subscription_store.get_subscription_by_public_key(
        channel_address, public_key, session
    )


# ---------------------------------------------------------------------------
# Requesting a subscription
# ---------------------------------------------------------------------------

async def request_subscription(
    channel_address: str,
    identity_id: str,
    access_rights: AccessRights,
    session: AsyncSession,
    streams: StreamsClient,
    *,
    seed: str | None = None,
    preshared_key: str | None = None,
) -> RequestSubscriptionResponse:
    """Request a subscription for ``identity_id`` on a channel.

    With a preshared key the subscription is an auditor's and authorized
    immediately; otherwise it waits for the channel author's approval.
    """
    if not channel_address or not identity_id:
        raise ValidationError("no channelAddress or identityId provided")

    existing = await subscription_store.get_subscription(channel_address, identity_id, session)
    if existing is not None:
        raise AlreadyRequestedError()

    try:
        handle = await streams.request_subscription(channel_address, seed, preshared_key)
    except LedgerError as exc:
        raise SubscriptionRequestError(str(exc)) from exc

    if handle.psk_id is None:
        if not handle.public_key:
            raise SubscriptionRequestError("ledger returned neither a public key nor a psk id")
        bound = await subscription_store.get_subscription_by_public_key(
            channel_address, handle.public_key, session
        )
        if bound is not None:
            # The minted handle is dropped here; the gateway cannot undo it.
            log.error(
                "subscription.duplicate_public_key",
                channel_address=channel_address,
                identity_id=identity_id,
                bound_identity_id=bound.identity_id,
            )
            raise DuplicatePublicKeyError("public key already used")

    try:
        state = await streams.export_subscription(handle.subscriber)
    except LedgerError as exc:
        raise SubscriptionRequestError(str(exc)) from exc

    if handle.psk_id is not None:
        subscription = _preshared_key_subscription(channel_address, identity_id, handle, state)
    else:
        subscription = _public_key_subscription(
            channel_address, identity_id, access_rights, handle, state
        )

    try:
        await subscription_store.add_subscription(subscription, session)
    except ConflictError:
        # Lost a race with a concurrent request; find out which key collided.
        if subscription.public_key:
            bound = await subscription_store.get_subscription_by_public_key(
                channel_address, subscription.public_key, session
            )
            if bound is not None and bound.identity_id != identity_id:
                raise DuplicatePublicKeyError("public key already used")
        raise AlreadyRequestedError()

    added = await channel_info_store.add_channel_subscriber_id(channel_address, identity_id, session)
    if not added:
        log.warning(
            "subscription.channel_info_missing",
            channel_address=channel_address,
            identity_id=identity_id,
        )

    log.info(
        "subscription.requested",
        channel_address=channel_address,
        identity_id=identity_id,
        access_rights=subscription.access_rights,
        is_authorized=subscription.is_authorized,
    )
    return RequestSubscriptionResponse(
        seed=handle.seed, subscription_link=handle.subscription_link
    )


# ---------------------------------------------------------------------------
# Administrative add, update, delete
# ---------------------------------------------------------------------------

async def add_subscription(subscription: Subscription, session: AsyncSession) -> Subscription:
    """Store an already minted subscription as-is."""
    if not subscription.channel_address or not subscription.identity_id or not subscription.public_key:
        raise ValidationError("no channelAddress, identityId or publicKey provided")

    existing = await subscription_store.get_subscription(
        subscription.channel_address, subscription.identity_id, session
    )
    if existing is not None:
        raise DuplicateSubscriptionError()

    try:
        await subscription_store.add_subscription(subscription, session)
    except ConflictError as exc:
        raise DuplicateSubscriptionError() from exc

    log.info(
        "subscription.added",
        channel_address=subscription.channel_address,
        identity_id=subscription.identity_id,
    )
    return subscription


async def update_subscription(
    acting_identity_id: str,
    channel_address: str,
    identity_id: str,
    patch: dict[str, Any],
    session: AsyncSession,
) -> Subscription:
    if not channel_address or not identity_id:
        raise ValidationError("no channelAddress or identityId provided")
    if not await can_mutate(channel_address, acting_identity_id, identity_id, session):
        raise UnauthorizedError("not authorized to update the subscription")

    subscription = await subscription_store.get_subscription(channel_address, identity_id, session)
    if subscription is None:
        raise NotFoundError("no subscription found")

    nulled = sorted(key for key in NON_NULLABLE_FIELDS if key in patch and patch[key] is None)
    if nulled:
        raise ValidationError(f"{', '.join(nulled)} may not be null")

    try:
        await subscription_store.update_subscription(subscription, patch, session)
    except ConflictError as exc:
        if patch.get("public_key"):
            log.error(
                "subscription.duplicate_public_key",
                channel_address=channel_address,
                identity_id=identity_id,
            )
            raise DuplicatePublicKeyError("public key already used") from exc
        raise ValidationError("subscription update violates a storage constraint") from exc

    log.info(
        "subscription.updated",
        channel_address=channel_address,
        identity_id=identity_id,
        by=acting_identity_id,
        fields=sorted(patch),
    )
    return subscription


async def delete_subscription(
    acting_identity_id: str,
    channel_address: str,
    identity_id: str,
    session: AsyncSession,
) -> None:
    """Delete the subscription row.

    The identity stays in the channel info subscriber list and the ledger
    handle is not revoked.
    """
    if not channel_address or not identity_id:
        raise ValidationError("no channelAddress or identityId provided")
    if not await can_mutate(channel_address, acting_identity_id, identity_id, session):
        raise UnauthorizedError("not authorized to delete the subscription")

    subscription = await subscription_store.get_subscription(channel_address, identity_id, session)
    if subscription is None:
        raise NotFoundError("no subscription found")

    await subscription_store.delete_subscription(subscription, session)
    log.info(
        "subscription.deleted",
        channel_address=channel_address,
        identity_id=identity_id,
        by=acting_identity_id,
    )
    log.warning(
        "subscription.delete_left_subscriber_listed",
        channel_address=channel_address,
        identity_id=identity_id,
    )
