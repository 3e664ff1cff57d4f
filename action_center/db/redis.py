"""Redis client shared by the store, the item locks and the readiness check.

Only created when ``store_backend == "redis"``; the memory backend never
touches this module's client.
"""

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from action_center.core.config import Settings, get_settings

logger = structlog.get_logger(__name__)

_redis: redis.Redis | None = None


async def init_redis(settings: Settings | None = None) -> redis.Redis:
    """Connect to the configured Redis and verify it answers.

    Idempotent: a second call returns the existing client.
    """
    global _redis

    if _redis is not None:
        return _redis

    settings = settings or get_settings()
    client = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout_seconds,
        socket_connect_timeout=settings.redis_socket_timeout_seconds,
    )
    await client.ping()

    _redis = client
    logger.info("redis_connected", key_prefix=settings.redis_key_prefix)
    return _redis


async def close_redis() -> None:
    global _redis

    if _redis is not None:
        await _redis.aclose()
        _redis = None
        logger.info("redis_closed")


async def ping_redis() -> bool:
    """True when the shared client exists and answers PING."""
    if _redis is None:
        return False
    try:
        return bool(await _redis.ping())
    except RedisError as e:
        logger.error("redis_ping_failed", error=str(e))
        return False
