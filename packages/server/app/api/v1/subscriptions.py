"""
Subscription API endpoints.

POST   /api/v1/subscriptions/{channelAddress}               Request a subscription
GET    /api/v1/subscriptions/{channelAddress}               List subscriptions (?is-authorized=)
GET    /api/v1/subscriptions/{channelAddress}/{identityId}  Get one subscription
POST   /api/v1/subscriptions/{channelAddress}/{identityId}  Add a minted subscription
PUT    /api/v1/subscriptions/{channelAddress}/{identityId}  Update (author or self)
DELETE /api/v1/subscriptions/{channelAddress}/{identityId}  Delete (author or self)
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedIdentity, get_authenticated_identity
from app.core.database import get_session
from app.core.streams import StreamsClient, get_streams_client
from app.models.subscription import Subscription
from app.services import reconciliation
from channel_hub_shared.schemas.subscriptions import (
    AddSubscriptionBody,
    RequestSubscriptionBody,
    RequestSubscriptionResponse,
    SubscriptionSchema,
    UpdateSubscriptionBody,
)

log = structlog.get_logger()

router = APIRouter()


def _to_schema(subscription: Subscription) -> SubscriptionSchema:
    return SubscriptionSchema.model_validate(subscription, from_attributes=True)


@router.post(
    "/{channelAddress}",
    response_model=RequestSubscriptionResponse,
    status_code=201,
)
async def request_subscription(
    channelAddress: str,
    body: RequestSubscriptionBody,
    auth: AuthenticatedIdentity = Depends(get_authenticated_identity),
    session: AsyncSession = Depends(get_session),
    streams: StreamsClient = Depends(get_streams_client),
):
    """Request a subscription to a channel for the authenticated identity."""
    return await reconciliation.request_subscription(
        channelAddress,
        auth.identity_id,
        body.access_rights,
        session,
        streams,
        seed=body.seed,
        preshared_key=body.preshared_key,
    )


@router.get("/{channelAddress}", response_model=list[SubscriptionSchema])
async def get_subscriptions(
    channelAddress: str,
    is_authorized: Optional[bool] = Query(default=None, alias="is-authorized"),
    auth: AuthenticatedIdentity = Depends(get_authenticated_identity),
    session: AsyncSession = Depends(get_session),
):
    """List the subscriptions of a channel, optionally filtered by authorization."""
    subscriptions = await reconciliation.get_subscriptions(channelAddress, is_authorized, session)
    return [_to_schema(s) for s in subscriptions]


@router.get("/{channelAddress}/{identityId}", response_model=Optional[SubscriptionSchema])
async def get_subscription_by_identity(
    channelAddress: str,
    identityId: str,
    auth: AuthenticatedIdentity = Depends(get_authenticated_identity),
    session: AsyncSession = Depends(get_session),
):
    """Get the subscription of one identity (null if there is none)."""
    subscription = await reconciliation.get_subscription(channelAddress, identityId, session)
    return _to_schema(subscription) if subscription else None


@router.post(
    "/{channelAddress}/{identityId}",
    response_model=SubscriptionSchema,
    status_code=201,
)
async def add_subscription(
    channelAddress: str,
    identityId: str,
    body: AddSubscriptionBody,
    auth: AuthenticatedIdentity = Depends(get_authenticated_identity),
    session: AsyncSession = Depends(get_session),
):
    """Store a subscription that was minted elsewhere."""
    data = body.model_dump(mode="json")
    data["channel_address"] = channelAddress
    data["identity_id"] = identityId
    subscription = await reconciliation.add_subscription(Subscription(**data), session)
    return _to_schema(subscription)


@router.put("/{channelAddress}/{identityId}", response_model=SubscriptionSchema)
async def update_subscription(
    channelAddress: str,
    identityId: str,
    body: UpdateSubscriptionBody,
    auth: AuthenticatedIdentity = Depends(get_authenticated_identity),
    session: AsyncSession = Depends(get_session),
):
    """Update a subscription (channel author or the subscriber itself)."""
    patch = body.model_dump(mode="json", exclude_unset=True)
    subscription = await reconciliation.update_subscription(
        auth.identity_id, channelAddress, identityId, patch, session
    )
    return _to_schema(subscription)


@router.delete("/{channelAddress}/{identityId}")
async def delete_subscription(
    channelAddress: str,
    identityId: str,
    auth: AuthenticatedIdentity = Depends(get_authenticated_identity),
    session: AsyncSession = Depends(get_session),
):
    """Delete a subscription (channel author or the subscriber itself)."""
    await reconciliation.delete_subscription(auth.identity_id, channelAddress, identityId, session)
    return {"message": "Subscription deleted"}
