"""
Subscription schemas shared between the server and its clients.

Covers: the subscription record as it travels over the wire, request bodies
for requesting / adding / updating a subscription, and the request response.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator

from .common import AccessRights, CamelModel, SubscriptionType


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class SubscriptionSchema(CamelModel):
    """A channel subscription of one identity."""
    type: SubscriptionType
    channel_address: str
    identity_id: str
    access_rights: AccessRights
    is_authorized: bool = False
    subscription_link: Optional[str] = None
    state: str
    public_key: Optional[str] = None
    psk_id: Optional[str] = None
    keyload_link: Optional[str] = None
    sequence_link: Optional[str] = None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class RequestSubscriptionBody(CamelModel):
    """Ask to subscribe the authenticated identity to a channel."""
    access_rights: AccessRights
    seed: Optional[str] = Field(default=None, min_length=1)
    preshared_key: Optional[str] = Field(default=None, min_length=32, max_length=32)


class AddSubscriptionBody(CamelModel):
    """Administrative insert of an already minted subscription."""
    type: SubscriptionType = SubscriptionType.SUBSCRIBER
    channel_address: Optional[str] = None
    identity_id: Optional[str] = None
    access_rights: AccessRights
    is_authorized: bool = False
    subscription_link: Optional[str] = None
    state: str
    public_key: Optional[str] = None
    psk_id: Optional[str] = None
    keyload_link: Optional[str] = None
    sequence_link: Optional[str] = None


class UpdateSubscriptionBody(CamelModel):
    """Partial update; only fields sent by the client are applied."""
    access_rights: Optional[AccessRights] = None
    is_authorized: Optional[bool] = None
    subscription_link: Optional[str] = None
    state: Optional[str] = None
    public_key: Optional[str] = None
    psk_id: Optional[str] = None
    keyload_link: Optional[str] = None
    sequence_link: Optional[str] = None

    @field_validator("access_rights", "is_authorized", "state")
    @classmethod
    def not_null(cls, v):
        # Optional only so the field can be omitted; the stored column is NOT NULL
        if v is None:
            raise ValueError("may not be null")
        return v


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class RequestSubscriptionResponse(CamelModel):
    seed: Optional[str] = None
    subscription_link: str
