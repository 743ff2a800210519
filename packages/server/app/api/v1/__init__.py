"""
API v1 Router
"""

from fastapi import APIRouter
from channel_hub_shared.schemas.common import ErrorResponse
from . import channel_info, subscriptions

ERROR_RESPONSES = {
    code: {"model": ErrorResponse}
    for code in (400, 401, 404, 500)
}

router = APIRouter()

router.include_router(
    subscriptions.router,
    prefix="/subscriptions",
    tags=["Subscriptions"],
    responses=ERROR_RESPONSES,
)
router.include_router(
    channel_info.router,
    prefix="/channel-info",
    tags=["Channel Info"],
    responses=ERROR_RESPONSES,
)


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/subscriptions/{channelAddress}",
            "/subscriptions/{channelAddress}/{identityId}",
            "/channel-info/channel",
            "/channel-info/channel/{channelAddress}",
        ],
    }
