"""
Shared fixtures: in-memory SQLite database, a mocked streams gateway and an
HTTP client wired to both.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.auth import create_jwt
from app.core.database import get_session
from app.core.streams import StreamsClient, SubscriptionHandle, get_streams_client
from app.main import app
from app.models.channel_info import ChannelInfo


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def streams():
    """Streams gateway stand-in answering like a public-key subscription."""
    mock = AsyncMock(spec=StreamsClient)
    mock.request_subscription.return_value = SubscriptionHandle(
        subscriber="testsubscriber",
        subscription_link="testlink",
        public_key="testpublickey",
        seed="testseed",
    )
    mock.export_subscription.return_value = "teststate"
    return mock


@pytest.fixture
async def channel_info(session):
    """Channel 'testaddress' authored by did:iota:author."""
    info = ChannelInfo(
        channel_address="testaddress",
        author_id="did:iota:author",
        topics=[{"type": "example-data", "source": "data-creator"}],
        subscribers=[],
    )
    session.add(info)
    await session.commit()
    return info


@pytest.fixture
async def client(session, streams):
    async def _session_override():
        yield session
        await session.commit()

    async def _streams_override():
        return streams

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_streams_client] = _streams_override
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def bearer():
    """Build Authorization headers for an identity."""

    def _bearer(identity_id: str) -> dict[str, str]:
        token, _ = create_jwt(identity_id)
        return {"Authorization": f"Bearer {token}"}

    return _bearer
