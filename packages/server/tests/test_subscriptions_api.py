"""
Integration tests for the subscription endpoints.

Tests cover:
- Request subscription (public key, preshared key, duplicates, ledger failure)
- Listing with the is-authorized filter
- Admin add, update and delete status codes and error bodies
"""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from app.core.errors import LedgerError
from app.core.streams import SubscriptionHandle
from app.models.subscription import Subscription

PRESHARED_KEY = "d57921c36648c411db5048b652ec11b8"

SUBSCRIPTION_BODY = {
    "type": "Subscriber",
    "channelAddress": "testaddress",
    "identityId": "did:iota:1234",
    "accessRights": "Read",
    "isAuthorized": False,
    "publicKey": "testpublickey",
    "state": "teststate",
    "subscriptionLink": "testlink",
}


async def _store(session, **overrides) -> Subscription:
    fields = dict(
        type="Subscriber",
        channel_address="testaddress",
        identity_id="did:iota:1234",
        access_rights="Read",
        is_authorized=False,
        public_key="testpublickey",
        subscription_link="testlink",
        state="teststate",
    )
    fields.update(overrides)
    subscription = Subscription(**fields)
    session.add(subscription)
    await session.commit()
    return subscription


class TestRequestSubscriptionRoute:

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client: AsyncClient):
        response = await client.post("/api/v1/subscriptions/testaddress", json={"accessRights": "Read"})
        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}

    @pytest.mark.asyncio
    async def test_creates_subscription(self, client: AsyncClient, bearer, streams, channel_info):
        response = await client.post(
            "/api/v1/subscriptions/testaddress",
            json={"accessRights": "Read"},
            headers=bearer("did:iota:1234"),
        )
        assert response.status_code == 201
        assert response.json() == {"seed": "testseed", "subscriptionLink": "testlink"}
        streams.request_subscription.assert_awaited_once_with("testaddress", None, None)

        listed = await client.get("/api/v1/subscriptions/testaddress", headers=bearer("did:iota:1234"))
        assert listed.status_code == 200
        body = listed.json()
        assert len(body) == 1
        assert body[0]["identityId"] == "did:iota:1234"
        assert body[0]["accessRights"] == "Read"
        assert body[0]["isAuthorized"] is False
        assert body[0]["publicKey"] == "testpublickey"
        assert body[0]["state"] == "teststate"

    @pytest.mark.asyncio
    async def test_preshared_key_yields_audit(self, client: AsyncClient, bearer, streams):
        streams.request_subscription.return_value = SubscriptionHandle(
            subscriber="testsubscriber",
            subscription_link="testlink",
            psk_id="testpskid",
            seed="testseed",
        )
        response = await client.post(
            "/api/v1/subscriptions/testaddress",
            json={"accessRights": "ReadAndWrite", "presharedKey": PRESHARED_KEY},
            headers=bearer("did:iota:1234"),
        )
        assert response.status_code == 201
        streams.request_subscription.assert_awaited_once_with("testaddress", None, PRESHARED_KEY)

        one = await client.get(
            "/api/v1/subscriptions/testaddress/did:iota:1234", headers=bearer("did:iota:1234")
        )
        sub = one.json()
        assert sub["accessRights"] == "Audit"
        assert sub["isAuthorized"] is True
        assert sub["keyloadLink"] == "testaddress"
        assert sub["pskId"] == "testpskid"
        assert sub["publicKey"] is None

    @pytest.mark.asyncio
    async def test_seed_is_forwarded(self, client: AsyncClient, bearer, streams):
        await client.post(
            "/api/v1/subscriptions/testaddress",
            json={"accessRights": "Write", "seed": "myseed"},
            headers=bearer("did:iota:1234"),
        )
        streams.request_subscription.assert_awaited_once_with("testaddress", "myseed", None)

    @pytest.mark.asyncio
    async def test_missing_access_rights_is_bad_request(self, client: AsyncClient, bearer):
        response = await client.post(
            "/api/v1/subscriptions/testaddress", json={}, headers=bearer("did:iota:1234")
        )
        assert response.status_code == 400
        assert "accessRights" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_already_requested(self, client: AsyncClient, bearer, session):
        await _store(session)
        response = await client.post(
            "/api/v1/subscriptions/testaddress",
            json={"accessRights": "Read"},
            headers=bearer("did:iota:1234"),
        )
        assert response.status_code == 400
        assert response.json() == {"error": "subscription already requested"}

    @pytest.mark.asyncio
    async def test_public_key_already_used(self, client: AsyncClient, bearer, session, streams):
        await _store(session, identity_id="did:iota:5678")
        response = await client.post(
            "/api/v1/subscriptions/testaddress",
            json={"accessRights": "Read"},
            headers=bearer("did:iota:1234"),
        )
        assert response.status_code == 400
        assert response.json() == {"error": "could not request the subscription"}
        streams.export_subscription.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ledger_failure_is_not_leaked(self, client: AsyncClient, bearer, streams):
        streams.request_subscription.side_effect = LedgerError("node https://secret-node:14265 refused")
        response = await client.post(
            "/api/v1/subscriptions/testaddress",
            json={"accessRights": "Read"},
            headers=bearer("did:iota:1234"),
        )
        assert response.status_code == 500
        assert response.json() == {"error": "could not request the subscription"}


class TestReadRoutes:

    @pytest.mark.asyncio
    async def test_is_authorized_filter(self, client: AsyncClient, bearer, session):
        await _store(session, identity_id="did:iota:1", public_key="pk1", is_authorized=True)
        await _store(session, identity_id="did:iota:2", public_key="pk2", is_authorized=False)
        headers = bearer("did:iota:1")

        everything = await client.get("/api/v1/subscriptions/testaddress", headers=headers)
        authorized = await client.get(
            "/api/v1/subscriptions/testaddress", params={"is-authorized": "true"}, headers=headers
        )
        pending = await client.get(
            "/api/v1/subscriptions/testaddress", params={"is-authorized": "false"}, headers=headers
        )

        assert {s["identityId"] for s in everything.json()} == {"did:iota:1", "did:iota:2"}
        assert [s["identityId"] for s in authorized.json()] == ["did:iota:1"]
        assert [s["identityId"] for s in pending.json()] == ["did:iota:2"]

    @pytest.mark.asyncio
    async def test_unknown_subscription_is_null(self, client: AsyncClient, bearer):
        response = await client.get(
            "/api/v1/subscriptions/testaddress/did:iota:5678", headers=bearer("did:iota:1234")
        )
        assert response.status_code == 200
        assert response.json() is None


class TestAddSubscriptionRoute:

    @pytest.mark.asyncio
    async def test_created(self, client: AsyncClient, bearer):
        response = await client.post(
            "/api/v1/subscriptions/testaddress/did:iota:5678",
            json=SUBSCRIPTION_BODY,
            headers=bearer("did:iota:1234"),
        )
        assert response.status_code == 201
        body = response.json()
        # The path identifies the record
        assert body["identityId"] == "did:iota:5678"
        assert body["publicKey"] == "testpublickey"

    @pytest.mark.asyncio
    async def test_missing_public_key(self, client: AsyncClient, bearer):
        body = {k: v for k, v in SUBSCRIPTION_BODY.items() if k != "publicKey"}
        response = await client.post(
            "/api/v1/subscriptions/testaddress/did:iota:5678",
            json=body,
            headers=bearer("did:iota:1234"),
        )
        assert response.status_code == 400
        assert response.json() == {"error": "no channelAddress, identityId or publicKey provided"}

    @pytest.mark.asyncio
    async def test_already_added(self, client: AsyncClient, bearer, session):
        await _store(session, identity_id="did:iota:5678", public_key="otherkey")
        response = await client.post(
            "/api/v1/subscriptions/testaddress/did:iota:5678",
            json=SUBSCRIPTION_BODY,
            headers=bearer("did:iota:1234"),
        )
        assert response.status_code == 400
        assert response.json() == {"error": "subscription already added"}


class TestUpdateAndDeleteRoutes:

    @pytest.mark.asyncio
    async def test_update_by_author(self, client: AsyncClient, bearer, session, channel_info):
        await _store(session)
        response = await client.put(
            "/api/v1/subscriptions/testaddress/did:iota:1234",
            json={"isAuthorized": True, "keyloadLink": "keyloadlink"},
            headers=bearer("did:iota:author"),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["isAuthorized"] is True
        assert body["keyloadLink"] == "keyloadlink"
        # Fields not sent are left alone
        assert body["accessRights"] == "Read"

    @pytest.mark.asyncio
    async def test_update_with_null_is_bad_request(self, client: AsyncClient, bearer, session, channel_info):
        await _store(session)
        response = await client.put(
            "/api/v1/subscriptions/testaddress/did:iota:1234",
            json={"isAuthorized": None},
            headers=bearer("did:iota:author"),
        )
        assert response.status_code == 400
        assert "isAuthorized" in response.json()["error"]
        assert "may not be null" in response.json()["error"]

        one = await client.get(
            "/api/v1/subscriptions/testaddress/did:iota:1234", headers=bearer("did:iota:author")
        )
        assert one.json()["isAuthorized"] is False

    @pytest.mark.asyncio
    async def test_update_onto_bound_public_key(self, client: AsyncClient, bearer, session, channel_info):
        await _store(session)
        await _store(session, identity_id="did:iota:5678", public_key="otherpublickey")
        response = await client.put(
            "/api/v1/subscriptions/testaddress/did:iota:5678",
            json={"publicKey": "testpublickey"},
            headers=bearer("did:iota:author"),
        )
        assert response.status_code == 400
        assert response.json() == {"error": "could not request the subscription"}

    @pytest.mark.asyncio
    async def test_update_by_stranger(self, client: AsyncClient, bearer, session, channel_info):
        await _store(session, identity_id="did:iota:5678")
        response = await client.put(
            "/api/v1/subscriptions/testaddress/did:iota:5678",
            json={"isAuthorized": True},
            headers=bearer("did:iota:1234"),
        )
        assert response.status_code == 401
        assert response.json() == {"error": "not authorized to update the subscription"}

    @pytest.mark.asyncio
    async def test_update_missing(self, client: AsyncClient, bearer, channel_info):
        response = await client.put(
            "/api/v1/subscriptions/testaddress/did:iota:1234",
            json={"isAuthorized": True},
            headers=bearer("did:iota:1234"),
        )
        assert response.status_code == 404
        assert response.json() == {"error": "no subscription found"}

    @pytest.mark.asyncio
    async def test_delete_by_self(self, client: AsyncClient, bearer, session, channel_info):
        await _store(session)
        response = await client.delete(
            "/api/v1/subscriptions/testaddress/did:iota:1234", headers=bearer("did:iota:1234")
        )
        assert response.status_code == 200

        one = await client.get(
            "/api/v1/subscriptions/testaddress/did:iota:1234", headers=bearer("did:iota:1234")
        )
        assert one.json() is None

    @pytest.mark.asyncio
    async def test_delete_by_stranger(self, client: AsyncClient, bearer, session, channel_info):
        await _store(session, identity_id="did:iota:5678")
        response = await client.delete(
            "/api/v1/subscriptions/testaddress/did:iota:5678", headers=bearer("did:iota:1234")
        )
        assert response.status_code == 401
        assert response.json() == {"error": "not authorized to delete the subscription"}

    @pytest.mark.asyncio
    async def test_delete_missing(self, client: AsyncClient, bearer, channel_info):
        response = await client.delete(
            "/api/v1/subscriptions/testaddress/did:iota:1234", headers=bearer("did:iota:author")
        )
        assert response.status_code == 404
        assert response.json() == {"error": "no subscription found"}
