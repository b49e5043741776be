"""Redis pool lifecycle tests — a failed startup ping leaves nothing open."""

import pytest

from stallpos.db import redis as redis_module


class UnreachableRedis:
    def __init__(self):
        self.closed = False

    async def ping(self):
        raise ConnectionError("connection refused")

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_init_redis_closes_client_when_ping_fails(monkeypatch):
    client = UnreachableRedis()
    monkeypatch.setattr(redis_module.aioredis, "from_url", lambda *a, **kw: client)
    monkeypatch.setattr(redis_module, "_redis", None)

    with pytest.raises(ConnectionError):
        await redis_module.init_redis()

    assert client.closed
    with pytest.raises(RuntimeError):
        redis_module.get_redis()
