"""Subscription model: one row per (channel, identity)."""

from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin


class Subscription(TimestampMixin, SQLModel, table=True):
    __tablename__ = "subscriptions"
    __table_args__ = (
        sa.UniqueConstraint("channel_address", "public_key", name="uq_subscriptions_channel_public_key"),
    )

    channel_address: str = Field(primary_key=True, nullable=False)
    identity_id: str = Field(primary_key=True, nullable=False, index=True)
    type: str = Field(nullable=False)  # Author | Subscriber
    access_rights: str = Field(nullable=False)  # Audit | Read | Write | ReadAndWrite
    is_authorized: bool = Field(default=False, nullable=False, index=True)
    subscription_link: Optional[str] = None
    state: str = Field(nullable=False, sa_type=sa.Text)
    public_key: Optional[str] = Field(default=None)
    psk_id: Optional[str] = Field(default=None)
    keyload_link: Optional[str] = None
    sequence_link: Optional[str] = None
