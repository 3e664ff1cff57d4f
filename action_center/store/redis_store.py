"""Redis-backed action item store.

Key layout (prefix defaults to "actioncenter"):
- {prefix}:items              hash   item_id -> ActionItem JSON
- {prefix}:queue:{queue}      set    item ids in a queue
- {prefix}:notes:{item_id}    list   ActionNote JSON, append order
- {prefix}:lock:{item_id}     string per-item write lock (see ItemLock)

A transaction writes the item hash field and pushes its notes in one
MULTI/EXEC pipeline, so an item never changes without its audit notes.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from redis.asyncio import Redis
from redis.exceptions import WatchError

from action_center.core.locking import ItemLock
from action_center.domain.queues import Queue
from action_center.domain.severity import AMBER_HOURS, RED_HOURS
from action_center.schemas.action_items import ActionItem, ActionNote
from action_center.store.base import ActionStore, ItemTransaction


class RedisActionStore(ActionStore):
    """Durable store shared by every API process."""

    def __init__(
        self,
        redis: Redis,
        key_prefix: str = "actioncenter",
        lock_ttl: int = 30,
        lock_wait_seconds: float = 5.0,
        red_hours: float = RED_HOURS,
        amber_hours: float = AMBER_HOURS,
    ):
        super().__init__(red_hours=red_hours, amber_hours=amber_hours)
        self.redis = redis
        self.key_prefix = key_prefix
        self.lock_ttl = lock_ttl
        self.lock_wait_seconds = lock_wait_seconds
        self.item_lock = ItemLock(redis, key_prefix)

    @property
    def _items_key(self) -> str:
        return f"{self.key_prefix}:items"

    def _queue_key(self, queue: Queue) -> str:
        return f"{self.key_prefix}:queue:{queue.value}"

    def _notes_key(self, item_id: str) -> str:
        return f"{self.key_prefix}:notes:{item_id}"

    async def get(self, item_id: str) -> ActionItem | None:
        raw = await self.redis.hget(self._items_key, item_id)
        return ActionItem.model_validate_json(raw) if raw else None

    async def items(self, queue: Queue | None = None) -> list[ActionItem]:
        if queue is None:
            raw_items = await self.redis.hvals(self._items_key)
        else:
            ids = await self.redis.smembers(self._queue_key(queue))
            if not ids:
                return []
            raw_items = await self.redis.hmget(self._items_key, sorted(ids))
        return [ActionItem.model_validate_json(raw) for raw in raw_items if raw]

    async def notes(self, item_id: str) -> list[ActionNote]:
        raw_notes = await self.redis.lrange(self._notes_key(item_id), 0, -1)
        return [ActionNote.model_validate_json(raw) for raw in raw_notes]

    async def _insert(self, item: ActionItem) -> bool:
        """Write the item hash field and its queue membership in one MULTI.

        WATCH on the items hash turns a concurrent write into a retry, so an
        item is never visible to the summary without being in its queue set.
        """
        async with self.redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(self._items_key)
                    if await pipe.hexists(self._items_key, item.id):
                        await pipe.unwatch()
                        return False
                    pipe.multi()
                    pipe.hset(self._items_key, item.id, item.model_dump_json())
                    pipe.sadd(self._queue_key(item.queue), item.id)
                    await pipe.execute()
                    return True
                except WatchError:
                    continue

    async def _commit(self, txn: ItemTransaction) -> None:
        async with self.redis.pipeline(transaction=True) as pipe:
            if txn.item_changed:
                pipe.hset(self._items_key, txn.item.id, txn.item.model_dump_json())
            if txn.notes:
                pipe.rpush(
                    self._notes_key(txn.original.id),
                    *(note.model_dump_json() for note in txn.notes),
                )
            await pipe.execute()

    @asynccontextmanager
    async def _lock(self, item_id: str) -> AsyncGenerator[None, None]:
        async with self.item_lock.lock(
            item_id, ttl=self.lock_ttl, wait_timeout=self.lock_wait_seconds
        ):
            yield
