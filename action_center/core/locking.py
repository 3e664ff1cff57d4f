"""Distributed per-item write lock using Redis.

This module provides:
- Item-level locks so two operators never interleave a read-modify-write
- Owner tokens so a lock is only released by whoever holds it
- Lock acquisition polling bounded by a wait timeout (tenacity)
- Automatic lock expiration via TTL if a holder crashes
"""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import redis.asyncio as redis
import structlog
from redis.exceptions import WatchError
from tenacity import AsyncRetrying, retry_if_result, stop_after_delay, wait_fixed

from action_center.core.exceptions import ConcurrencyConflictError

logger = structlog.get_logger(__name__)


class ItemLock:
    """Manages distributed action item locks using Redis."""

    DEFAULT_TTL = 30  # seconds
    POLL_INTERVAL = 0.05  # seconds between acquisition attempts

    def __init__(self, redis_client: redis.Redis, key_prefix: str = "actioncenter"):
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _lock_key(self, item_id: str) -> str:
        """Generate the Redis key for an item lock."""
        return f"{self.key_prefix}:lock:{item_id}"

    async def acquire(self, item_id: str, token: str, ttl: int | None = None) -> bool:
        """Attempt to acquire the lock on an item once.

        Args:
            item_id: Action item identifier
            token: Unique owner token for this acquisition
            ttl: Lock time-to-live in seconds (default 30)

        Returns:
            True if lock acquired, False if held by another owner
        """
        key = self._lock_key(item_id)
        lock_value = f"{token}:{datetime.now(UTC).isoformat()}"
        result = await self.redis.set(key, lock_value, nx=True, ex=ttl or self.DEFAULT_TTL)
        return bool(result)

    async def release(self, item_id: str, token: str) -> bool:
        """Release the lock if ``token`` still owns it.

        Uses WATCH so the ownership check and the delete are atomic.

        Returns:
            True if lock released, False if not owned by this token
        """
        key = self._lock_key(item_id)
        async with self.redis.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(key)
                current = await pipe.get(key)
                if not current or not current.startswith(f"{token}:"):
                    await pipe.unwatch()
                    return False
                pipe.multi()
                pipe.delete(key)
                await pipe.execute()
                return True
            except WatchError:
                # Key changed under us: expired and re-acquired by someone else
                return False

    async def is_locked(self, item_id: str) -> dict | None:
        """Check if an item is locked.

        Returns:
            Lock info dict if locked, None if not locked
        """
        key = self._lock_key(item_id)
        current = await self.redis.get(key)
        if not current:
            return None

        token, _, locked_at = current.partition(":")
        return {
            "item_id": item_id,
            "token": token,
            "locked_at": locked_at or None,
            "expires_in": await self.redis.ttl(key),
        }

    @asynccontextmanager
    async def lock(
        self,
        item_id: str,
        ttl: int | None = None,
        wait_timeout: float = 5.0,
    ) -> AsyncGenerator[str, None]:
        """Context manager holding the item lock for the duration of the block.

        Polls until the lock is free or ``wait_timeout`` elapses.

        Yields:
            The owner token of this acquisition

        Raises:
            ConcurrencyConflictError: lock not acquired within wait_timeout

        Example:
            async with item_lock.lock("AC-1A2B3C4D"):
                # read-modify-write the item
                pass
        """
        token = uuid.uuid4().hex
        retrying = AsyncRetrying(
            stop=stop_after_delay(wait_timeout),
            wait=wait_fixed(self.POLL_INTERVAL),
            retry=retry_if_result(lambda acquired: acquired is False),
            retry_error_callback=lambda retry_state: False,
        )
        acquired = await retrying(self.acquire, item_id, token, ttl)
        if not acquired:
            logger.warning("item_lock_timeout", item_id=item_id, waited_seconds=wait_timeout)
            raise ConcurrencyConflictError(item_id, wait_timeout)

        try:
            yield token
        finally:
            released = await self.release(item_id, token)
            if not released:
                logger.warning("item_lock_lost_before_release", item_id=item_id)
