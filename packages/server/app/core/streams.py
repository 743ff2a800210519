"""
Streams gateway client: the ledger side of channel subscriptions.

The gateway owns the cryptographic subscriber handles. This client only asks
it to mint a handle for a channel and to export/import handle state, which is
opaque to Channel Hub and stored as-is.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

from app.core.config import get_settings
from app.core.errors import LedgerError

log = structlog.get_logger()


@dataclass(frozen=True)
class SubscriptionHandle:
    """Result of a subscription request on the ledger."""

    subscriber: str
    subscription_link: str
    public_key: Optional[str] = None
    psk_id: Optional[str] = None
    seed: Optional[str] = None


class StreamsClient:
    """Async JSON client for the streams gateway."""

    def __init__(
        self,
        gateway_url: str,
        state_password: str,
        request_timeout: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._gateway_url = gateway_url.rstrip("/")
        self._state_password = state_password
        self._request_timeout = request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self._gateway_url,
            timeout=httpx.Timeout(self._request_timeout),
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        if self._client is None:
            await self.open()
        assert self._client
        try:
            resp = await self._client.post(path, json=body)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            log.error(
                "streams.gateway_error",
                path=path,
                status=exc.response.status_code,
                body=exc.response.text[:500],
            )
            raise LedgerError(f"streams gateway answered {exc.response.status_code} on {path}") from exc
        except httpx.HTTPError as exc:
            log.error("streams.gateway_unreachable", path=path, error=str(exc))
            raise LedgerError(f"streams gateway unreachable on {path}") from exc
        except ValueError as exc:
            log.error("streams.invalid_response", path=path)
            raise LedgerError(f"streams gateway sent invalid JSON on {path}") from exc

    async def request_subscription(
        self,
        channel_address: str,
        seed: str | None = None,
        preshared_key: str | None = None,
    ) -> SubscriptionHandle:
        """Mint a subscriber handle for a channel.

        With a preshared key the gateway answers with a ``pskId`` and no
        public key; otherwise it answers with the subscriber's public key.
        """
        data = await self._post(
            "/subscriptions/request",
            {
                "channelAddress": channel_address,
                "seed": seed,
                "presharedKey": preshared_key,
            },
        )
        try:
            handle = SubscriptionHandle(
                subscriber=data["subscriber"],
                subscription_link=data["subscriptionLink"],
                public_key=data.get("publicKey") or None,
                psk_id=data.get("pskId") or None,
                seed=data.get("seed"),
            )
        except KeyError as exc:
            raise LedgerError(f"streams gateway response misses {exc.args[0]}") from exc
        log.info(
            "streams.subscription_requested",
            channel_address=channel_address,
            has_psk=handle.psk_id is not None,
        )
        return handle

    async def export_subscription(self, subscriber: str) -> str:
        """Export the opaque state of a subscriber handle."""
        data = await self._post(
            "/subscriptions/export",
            {"subscriber": subscriber, "password": self._state_password},
        )
        if "state" not in data:
            raise LedgerError("streams gateway export response misses state")
        return data["state"]

    async def import_subscription(self, state: str, is_authorized: bool) -> str:
        """Restore a subscriber handle from exported state.

        Counterpart of ``export_subscription`` for restoring a stored
        ``Subscription.state``. No operation of this service calls it yet.
        """
        data = await self._post(
            "/subscriptions/import",
            {
                "state": state,
                "password": self._state_password,
                "isAuthorized": is_authorized,
            },
        )
        if "subscriber" not in data:
            raise LedgerError("streams gateway import response misses subscriber")
        return data["subscriber"]


# ---------------------------------------------------------------------------
# Application-wide client
# ---------------------------------------------------------------------------

_streams_client: StreamsClient | None = None


async def get_streams_client() -> StreamsClient:
    """Get or create the shared streams client (FastAPI dependency)."""
    global _streams_client
    if _streams_client is None:
        settings = get_settings()
        _streams_client = StreamsClient(
            gateway_url=settings.streams_gateway_url,
            state_password=settings.streams_state_password,
            request_timeout=settings.streams_request_timeout_seconds,
        )
        await _streams_client.open()
    return _streams_client


async def close_streams_client() -> None:
    """Close the shared streams client."""
    global _streams_client
    if _streams_client is not None:
        await _streams_client.close()
        _streams_client = None
