"""Tests for the shared Redis client lifecycle, run against fakeredis."""

import fakeredis
import fakeredis.aioredis
import pytest

from action_center.core.config import Settings
from action_center.db import redis as redis_db

pytestmark = pytest.mark.unit


@pytest.fixture
def fake_from_url(monkeypatch):
    calls = []
    server = fakeredis.FakeServer()

    def from_url(url, **kwargs):
        calls.append((url, kwargs))
        return fakeredis.aioredis.FakeRedis(server=server, decode_responses=True)

    monkeypatch.setattr(redis_db.redis, "from_url", from_url)
    yield calls
    monkeypatch.setattr(redis_db, "_redis", None)


async def test_init_connects_with_configured_timeouts(fake_from_url):
    settings = Settings(_env_file=None, redis_url="redis://cache:6379/2", redis_socket_timeout_seconds=1.5)

    client = await redis_db.init_redis(settings)

    assert await client.ping()
    url, kwargs = fake_from_url[0]
    assert url == "redis://cache:6379/2"
    assert kwargs["socket_timeout"] == 1.5
    assert kwargs["decode_responses"] is True
    await redis_db.close_redis()


async def test_init_is_idempotent(fake_from_url):
    settings = Settings(_env_file=None)
    first = await redis_db.init_redis(settings)
    second = await redis_db.init_redis(settings)

    assert first is second
    assert len(fake_from_url) == 1
    await redis_db.close_redis()


async def test_ping_tracks_client_lifecycle(fake_from_url):
    assert await redis_db.ping_redis() is False

    await redis_db.init_redis(Settings(_env_file=None))
    assert await redis_db.ping_redis() is True

    await redis_db.close_redis()
    assert await redis_db.ping_redis() is False
    assert redis_db._redis is None
