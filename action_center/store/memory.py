"""In-process action item store.

Used for demo mode and tests. Each instance owns its data, so every test
can construct a fresh store; writes to one item are serialized with a
per-item asyncio.Lock.
"""

import asyncio
from collections import defaultdict
from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager

from action_center.core.exceptions import ItemNotFoundError
from action_center.domain.queues import Queue
from action_center.domain.severity import AMBER_HOURS, RED_HOURS
from action_center.schemas.action_items import ActionItem, ActionNote
from action_center.store.base import ActionStore, ItemTransaction


class InMemoryActionStore(ActionStore):
    """Dict-backed store with per-item locks."""

    def __init__(
        self,
        seed: Iterable[ActionItem] = (),
        seed_notes: Iterable[ActionNote] = (),
        red_hours: float = RED_HOURS,
        amber_hours: float = AMBER_HOURS,
    ):
        super().__init__(red_hours=red_hours, amber_hours=amber_hours)
        self._items: dict[str, ActionItem] = {}
        self._notes: dict[str, list[ActionNote]] = defaultdict(list)
        self._locks: dict[str, asyncio.Lock] = {}

        for item in seed:
            self._items[item.id] = item.model_copy(deep=True)
        for note in seed_notes:
            self._notes[note.action_item_id].append(note)

    async def get(self, item_id: str) -> ActionItem | None:
        item = self._items.get(item_id)
        # Copies, so callers can never mutate stored state in place
        return item.model_copy(deep=True) if item else None

    async def items(self, queue: Queue | None = None) -> list[ActionItem]:
        return [
            item.model_copy(deep=True)
            for item in self._items.values()
            if queue is None or item.queue == queue
        ]

    async def notes(self, item_id: str) -> list[ActionNote]:
        return list(self._notes.get(item_id, ()))

    async def _insert(self, item: ActionItem) -> bool:
        if item.id in self._items:
            return False
        self._items[item.id] = item.model_copy(deep=True)
        return True

    async def _commit(self, txn: ItemTransaction) -> None:
        if txn.item_changed:
            self._items[txn.item.id] = txn.item.model_copy(deep=True)
        if txn.notes:
            self._notes[txn.original.id].extend(txn.notes)

    @asynccontextmanager
    async def _lock(self, item_id: str) -> AsyncGenerator[None, None]:
        # Items are never deleted, so the lock map stays bounded by the item count
        if item_id not in self._items:
            raise ItemNotFoundError(item_id)
        lock = self._locks.setdefault(item_id, asyncio.Lock())
        async with lock:
            yield
