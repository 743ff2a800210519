"""
Channel info service: CRUD for channel metadata and the advisory subscriber list.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import (
    DuplicateChannelInfoError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from app.models.channel_info import ChannelInfo
from channel_hub_shared.schemas.channel_info import CHANNEL_INFO_DATE_FORMAT, ChannelInfoDto

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# DTO conversion
# ---------------------------------------------------------------------------

def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value, CHANNEL_INFO_DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        raise ValidationError(f"invalid date '{value}', expected DD-MM-YYYY")


def channel_info_from_dto(dto: ChannelInfoDto) -> ChannelInfo:
    """Build a ChannelInfo row from its wire form; raises ValidationError."""
    if not dto.channel_address or not dto.topics or not dto.author_id:
        raise ValidationError("no channelAddress, topics or authorId provided")
    return ChannelInfo(
        channel_address=dto.channel_address,
        author_id=dto.author_id,
        topics=[t.model_dump() for t in dto.topics],
        subscribers=list(dto.subscribers or []),
        created=_parse_date(dto.created) or datetime.now(timezone.utc),
        latest_message=_parse_date(dto.latest_message),
    )


def channel_info_to_dto(info: ChannelInfo) -> ChannelInfoDto:
    return ChannelInfoDto(
        channel_address=info.channel_address,
        author_id=info.author_id,
        topics=info.topics,
        subscribers=info.subscribers or [],
        created=info.created.strftime(CHANNEL_INFO_DATE_FORMAT),
        latest_message=(
            info.latest_message.strftime(CHANNEL_INFO_DATE_FORMAT)
            if info.latest_message
            else None
        ),
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

async def find_channel_info(
    channel_address: str, session: AsyncSession
) -> Optional[ChannelInfo]:
    try:
        result = await session.execute(
            select(ChannelInfo).where(ChannelInfo.channel_address == channel_address)
        )
    except SQLAlchemyError as exc:
        raise StorageError("failed to read channel info") from exc
    return result.scalar_one_or_none()


async def get_channel_info(channel_address: str, session: AsyncSession) -> ChannelInfo:
    """Get channel info; raises NotFoundError if the channel is unknown."""
    if not channel_address:
        raise ValidationError("no channelAddress provided")
    info = await find_channel_info(channel_address, session)
    if info is None:
        raise NotFoundError("channel info not found")
    return info


async def add_channel_info(info: ChannelInfo, session: AsyncSession) -> ChannelInfo:
    if await find_channel_info(info.channel_address, session) is not None:
        raise DuplicateChannelInfoError()

    session.add(info)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        raise DuplicateChannelInfoError() from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StorageError("failed to add channel info") from exc
    log.info("channel_info.created", channel_address=info.channel_address, author_id=info.author_id)
    return info


async def update_channel_info(
    acting_identity_id: str, info: ChannelInfo, session: AsyncSession
) -> ChannelInfo:
    """Replace topics, subscribers and dates of a channel (author only)."""
    existing = await get_channel_info(info.channel_address, session)
    if existing.author_id != acting_identity_id:
        raise UnauthorizedError("not authorized to update the channel info")

    existing.topics = info.topics
    existing.subscribers = info.subscribers
    existing.latest_message = info.latest_message
    session.add(existing)
    try:
        await session.flush()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StorageError("failed to update channel info") from exc
    log.info("channel_info.updated", channel_address=existing.channel_address)
    return existing


async def delete_channel_info(
    acting_identity_id: str, channel_address: str, session: AsyncSession
) -> None:
    existing = await get_channel_info(channel_address, session)
    if existing.author_id != acting_identity_id:
        raise UnauthorizedError("not authorized to delete the channel info")
    try:
        await session.delete(existing)
        await session.flush()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StorageError("failed to delete channel info") from exc
    log.info("channel_info.deleted", channel_address=channel_address)


async def add_channel_subscriber_id(
    channel_address: str, identity_id: str, session: AsyncSession
) -> bool:
    """Append an identity to the channel's subscriber list (idempotent).

    Returns False when the channel has no channel info.
    """
    info = await find_channel_info(channel_address, session)
    if info is None:
        return False
    if identity_id not in (info.subscribers or []):
        # Reassign so the JSON column is flagged dirty
        info.subscribers = [*(info.subscribers or []), identity_id]
        session.add(info)
        try:
            await session.flush()
        except SQLAlchemyError as exc:
            await session.rollback()
            raise StorageError("failed to add channel subscriber") from exc
    return True
