"""
Tests for the current user's trade listing.
"""
import pytest
from httpx import AsyncClient

BOB = "user-bob"


@pytest.mark.asyncio
async def test_list_my_trades(client: AsyncClient, initiator_headers, responder_headers):
    first = (await client.post(
        "/api/trades", json={"responderUserId": BOB}, headers=initiator_headers
    )).json()["trade"]
    second = (await client.post("/api/trades", json={}, headers=initiator_headers)).json()["trade"]
    await client.post(f"/api/trades/{second['roomSlug']}/cancel", headers=initiator_headers)

    response = await client.get("/api/me/trades", headers=initiator_headers)
    assert response.status_code == 200
    assert {t["id"] for t in response.json()["trades"]} == {first["id"], second["id"]}

    response = await client.get("/api/me/trades?status=active", headers=initiator_headers)
    trades = response.json()["trades"]
    assert [t["roomSlug"] for t in trades] == [first["roomSlug"]]
    assert trades[0]["partnerUserId"] == BOB
    assert trades[0]["isInitiator"] is True

    response = await client.get("/api/me/trades?status=completed", headers=initiator_headers)
    assert [t["status"] for t in response.json()["trades"]] == ["canceled"]

    response = await client.get("/api/me/trades", headers=responder_headers)
    trades = response.json()["trades"]
    assert [t["id"] for t in trades] == [first["id"]]
    assert trades[0]["isInitiator"] is False


@pytest.mark.asyncio
async def test_invalid_status_filter(client: AsyncClient, initiator_headers):
    response = await client.get("/api/me/trades?status=pending", headers=initiator_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_requires_auth(client: AsyncClient):
    response = await client.get("/api/me/trades")
    assert response.status_code == 401
