"""Channel info schemas (channel metadata kept next to the ledger channel)."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from .common import CamelModel

# Dates travel as day-month-year strings
CHANNEL_INFO_DATE_FORMAT = "%d-%m-%Y"


class TopicSchema(BaseModel):
    type: str
    source: str


class ChannelInfoDto(CamelModel):
    channel_address: str
    author_id: str
    topics: list[TopicSchema] = []
    subscribers: list[str] = []
    created: Optional[str] = None
    latest_message: Optional[str] = None
