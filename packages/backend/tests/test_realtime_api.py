"""Realtime ops endpoint tests — stats and system messages."""

import pytest


@pytest.mark.asyncio
async def test_stats_empty(unauthenticated_client):
    """Stats are readable without a token."""
    r = await unauthenticated_client.get("/api/v1/realtime/stats")
    assert r.status_code == 200
    data = r.json()
    assert data["totalClients"] == 0
    assert data["totalRooms"] == 0
    assert data["roomStats"] == {}
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_stats_counts_clients_and_rooms(client, registry):
    for cid in ("a", "b", "c"):
        registry.register(cid)
    registry.join_room("a", "delivery")
    registry.join_room("b", "delivery")
    registry.join_room("c", "admin")

    data = (await client.get("/api/v1/realtime/stats")).json()
    assert data["totalClients"] == 3
    assert data["totalRooms"] == 2
    assert data["roomStats"] == {"delivery": 2, "admin": 1}


@pytest.mark.asyncio
async def test_system_message_broadcasts(client, registry, transport_factory):
    t = transport_factory()
    registry.register("c1", transport=t)

    r = await client.post(
        "/api/v1/realtime/system-message",
        json={"message": "Closing in 10 minutes", "type": "warning"},
    )
    assert r.status_code == 202
    assert r.json() == {"status": "sent", "recipients": 1}
    assert t.frames[0]["event"] == "systemMessage"
    assert t.frames[0]["data"]["type"] == "warning"


@pytest.mark.asyncio
async def test_system_message_validation(client):
    r = await client.post(
        "/api/v1/realtime/system-message", json={"message": "hi", "type": "shout"}
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_system_message_requires_admin(client, identity):
    identity.role = "counter"
    r = await client.post("/api/v1/realtime/system-message", json={"message": "hi"})
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_system_message_requires_token(unauthenticated_client):
    r = await unauthenticated_client.post(
        "/api/v1/realtime/system-message", json={"message": "hi"}
    )
    assert r.status_code == 401
