"""
Channel info API endpoints.

GET    /api/v1/channel-info/channel/{channelAddress}  Get channel info
POST   /api/v1/channel-info/channel                  Add channel info
PUT    /api/v1/channel-info/channel                  Update channel info (author only)
DELETE /api/v1/channel-info/channel/{channelAddress}  Delete channel info (author only)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedIdentity, get_authenticated_identity
from app.core.database import get_session
from app.services import channel_info as channel_info_service
from channel_hub_shared.schemas.channel_info import ChannelInfoDto

router = APIRouter()


@router.get("/channel/{channelAddress}", response_model=ChannelInfoDto)
async def get_channel_info(
    channelAddress: str,
    session: AsyncSession = Depends(get_session),
):
    """Get the metadata of a channel."""
    info = await channel_info_service.get_channel_info(channelAddress, session)
    return channel_info_service.channel_info_to_dto(info)


@router.post("/channel", response_model=ChannelInfoDto, status_code=201)
async def add_channel_info(
    body: ChannelInfoDto,
    auth: AuthenticatedIdentity = Depends(get_authenticated_identity),
    session: AsyncSession = Depends(get_session),
):
    """Register the metadata of a channel."""
    info = channel_info_service.channel_info_from_dto(body)
    info = await channel_info_service.add_channel_info(info, session)
    return channel_info_service.channel_info_to_dto(info)


@router.put("/channel", response_model=ChannelInfoDto)
async def update_channel_info(
    body: ChannelInfoDto,
    auth: AuthenticatedIdentity = Depends(get_authenticated_identity),
    session: AsyncSession = Depends(get_session),
):
    """Update the topics, subscribers and dates of a channel (author only)."""
    info = channel_info_service.channel_info_from_dto(body)
    info = await channel_info_service.update_channel_info(auth.identity_id, info, session)
    return channel_info_service.channel_info_to_dto(info)


@router.delete("/channel/{channelAddress}")
async def delete_channel_info(
    channelAddress: str,
    auth: AuthenticatedIdentity = Depends(get_authenticated_identity),
    session: AsyncSession = Depends(get_session),
):
    """Delete the metadata of a channel (author only)."""
    await channel_info_service.delete_channel_info(auth.identity_id, channelAddress, session)
    return {"message": "Channel info deleted"}
