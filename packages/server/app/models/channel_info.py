"""Channel info model: metadata of a ledger channel."""

from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


class ChannelInfo(SQLModel, table=True):
    __tablename__ = "channel_info"

    channel_address: str = Field(primary_key=True, nullable=False)
    author_id: str = Field(nullable=False, index=True)
    topics: list[dict] = Field(default_factory=list, sa_column=sa.Column(sa.JSON, nullable=False))
    subscribers: list[str] = Field(default_factory=list, sa_column=sa.Column(sa.JSON, nullable=False))
    created: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
    latest_message: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
