"""ActionStore — the single mutable shared resource of the Action Center.

Backends provide raw persistence (load, insert, commit, per-item lock).
This base class layers the read API (get / list) and the serialized
``transaction`` used by the dispatcher and the assignment service. There is
no public raw write: every mutation goes through a transaction that commits
the new item state and its audit notes together.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog

from action_center.core.exceptions import ItemNotFoundError
from action_center.domain.filters import apply_filters, paginate, totals_by_reason, validate_filters
from action_center.domain.queues import ItemStatus, Queue, validate_reason_codes
from action_center.domain.severity import AMBER_HOURS, RED_HOURS
from action_center.schemas.action_items import (
    ActionItem,
    ActionItemView,
    ActionNote,
    ListFilters,
    ListResponse,
    NewActionItem,
    NoteEvent,
)

logger = structlog.get_logger(__name__)


def new_item_id() -> str:
    """Short, human-scannable item id, e.g. ``AC-7F3A91C2``."""
    return f"AC-{uuid.uuid4().hex[:8].upper()}"


def new_note_id() -> str:
    return f"NOTE-{uuid.uuid4().hex[:12]}"


def build_note(
    item_id: str,
    body: str,
    author_id: str,
    author_name: str,
    now: datetime,
    event: NoteEvent | None = None,
) -> ActionNote:
    """Build a note; passing ``event`` makes it a system note for that lifecycle event."""
    return ActionNote(
        id=new_note_id(),
        action_item_id=item_id,
        body=body,
        author_id=author_id,
        author_name=author_name,
        created_at=now,
        kind="system" if event else "note",
        event=event,
    )


class ItemTransaction:
    """Staged changes to one item, committed atomically on clean exit.

    ``item`` is the current state read under the item lock. Callers replace
    it with ``stage`` and add audit notes with ``append_note``; nothing is
    written if the block raises.
    """

    def __init__(self, item: ActionItem):
        self.original = item
        self.item = item
        self.notes: list[ActionNote] = []

    def stage(self, item: ActionItem) -> None:
        if item.id != self.original.id:
            raise ValueError(f"Cannot stage {item.id} in a transaction for {self.original.id}")
        self.item = item

    def append_note(self, note: ActionNote) -> None:
        self.notes.append(note)

    @property
    def item_changed(self) -> bool:
        return self.item is not self.original

    @property
    def dirty(self) -> bool:
        return self.item_changed or bool(self.notes)


class ActionStore(ABC):
    """Abstract action item store with shared read and transaction logic."""

    def __init__(self, red_hours: float = RED_HOURS, amber_hours: float = AMBER_HOURS):
        self.red_hours = red_hours
        self.amber_hours = amber_hours

    # ── backend primitives ────────────────────────────────────────────────

    @abstractmethod
    async def get(self, item_id: str) -> ActionItem | None:
        """Return the item or None if it does not exist."""

    @abstractmethod
    async def items(self, queue: Queue | None = None) -> list[ActionItem]:
        """Snapshot of all items, optionally restricted to one queue. Unordered."""

    @abstractmethod
    async def notes(self, item_id: str) -> list[ActionNote]:
        """All notes of an item in append order."""

    @abstractmethod
    async def _insert(self, item: ActionItem) -> bool:
        """Insert a new item. Returns False if the id is already taken."""

    @abstractmethod
    async def _commit(self, txn: ItemTransaction) -> None:
        """Persist staged item state and notes as one unit."""

    @abstractmethod
    def _lock(self, item_id: str) -> AsyncIterator[None]:
        """Async context manager serializing writers of one item."""

    # ── shared behaviour ──────────────────────────────────────────────────

    async def create(self, new_item: NewActionItem, now: datetime | None = None) -> ActionItem:
        """Create an item from an originating collaborator's event.

        Raises:
            InvalidReasonCodeError: reason code outside the queue's closed set
        """
        validate_reason_codes(new_item.queue, [new_item.reason_code])
        now = now or datetime.now(timezone.utc)

        while True:
            item = ActionItem(
                id=new_item_id(),
                status=ItemStatus.OPEN,
                opened_at=now,
                updated_at=now,
                **new_item.model_dump(),
            )
            if await self._insert(item):
                break

        logger.info(
            "action_item_created",
            item_id=item.id,
            queue=item.queue.value,
            reason_code=item.reason_code,
            ref_type=item.ref_type.value,
            ref_id=item.ref_id,
        )
        return item

    async def require(self, item_id: str) -> ActionItem:
        item = await self.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    @asynccontextmanager
    async def transaction(self, item_id: str) -> AsyncGenerator[ItemTransaction, None]:
        """Serialized read-modify-write of a single item.

        Holds the item lock for the whole block, re-reads the item under the
        lock, and commits staged state plus notes together on clean exit.

        Raises:
            ItemNotFoundError: item does not exist
            ConcurrencyConflictError: lock not acquired in time (Redis backend)
        """
        async with self._lock(item_id):
            item = await self.get(item_id)
            if item is None:
                raise ItemNotFoundError(item_id)
            txn = ItemTransaction(item)
            yield txn
            if txn.dirty:
                try:
                    await self._commit(txn)
                except Exception:
                    logger.error(
                        "action_item_commit_failed",
                        item_id=item_id,
                        note_count=len(txn.notes),
                        exc_info=True,
                    )
                    raise

    async def list(
        self,
        queue: Queue,
        filters: ListFilters | None = None,
        page: int = 1,
        limit: int | None = 20,
        actor_id: str | None = None,
        now: datetime | None = None,
    ) -> ListResponse:
        """Filtered, urgency-ordered, paginated items of one queue.

        ``totals_by_reason`` is computed over the full filtered set, not the page.
        Resolved items are excluded unless ``filters.status`` asks for them.
        """
        filters = filters or ListFilters()
        validate_filters(queue, filters)
        now = now or datetime.now(timezone.utc)

        candidates = await self.items(queue)
        matched = apply_filters(candidates, filters, actor_id, now, self.red_hours, self.amber_hours)
        page_items = paginate(matched, page, limit)

        return ListResponse(
            items=[
                ActionItemView.from_item(item, now, self.red_hours, self.amber_hours)
                for item in page_items
            ],
            page=page,
            limit=limit,
            total=len(matched),
            totals_by_reason=totals_by_reason(matched),
        )

    def view(self, item: ActionItem, now: datetime | None = None) -> ActionItemView:
        return ActionItemView.from_item(
            item, now or datetime.now(timezone.utc), self.red_hours, self.amber_hours
        )
