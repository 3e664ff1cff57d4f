"""ActionCenter — single entry point composing store, dispatcher, assignment, and summary.

Provides:
- Reads (list / get / notes / timeline / summaries) returning views with
  SLA severity computed at read time
- Writes delegated to ActionDispatcher and AssignmentService, each followed
  by a summary cache invalidation
- build_store / build_action_center: wiring from Settings
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from action_center.core.actor import Actor, ensure_queue_access
from action_center.core.config import Settings
from action_center.core.exceptions import InvalidFilterError
from action_center.domain.queues import Queue
from action_center.schemas.action_items import (
    ActionCenterSummary,
    ActionItemView,
    ActionNote,
    ListFilters,
    ListResponse,
    NewActionItem,
    QueueSummary,
    RetryResult,
    TimelineEvent,
)
from action_center.services.assignment import AssignmentService
from action_center.services.dispatcher import ActionDispatcher
from action_center.services.summary import SummaryAggregator
from action_center.services.webhook_retry import WebhookRedeliverer, build_redeliverer
from action_center.store.base import ActionStore
from action_center.store.memory import InMemoryActionStore
from action_center.store.redis_store import RedisActionStore
from action_center.store.seed import demo_items

logger = structlog.get_logger(__name__)


class ActionCenter:
    """Operator-facing operations over one ActionStore."""

    def __init__(
        self,
        store: ActionStore,
        redeliverer: WebhookRedeliverer,
        *,
        default_page_limit: int = 20,
        max_page_limit: int = 200,
        webhook_timeout: float = 10.0,
        summary_cache_seconds: float = 5.0,
        enforce_permissions: bool = True,
    ):
        self.store = store
        self.default_page_limit = default_page_limit
        self.max_page_limit = max_page_limit
        self.enforce_permissions = enforce_permissions
        self.dispatcher = ActionDispatcher(
            store, redeliverer, webhook_timeout=webhook_timeout, enforce_permissions=enforce_permissions
        )
        self.assignment = AssignmentService(store, enforce_permissions=enforce_permissions)
        self.summary = SummaryAggregator(
            store, cache_seconds=summary_cache_seconds, enforce_permissions=enforce_permissions
        )

    def _view(self, item, now: datetime | None = None) -> ActionItemView:
        return self.store.view(item, now)

    # ── reads ─────────────────────────────────────────────────────────────

    async def list(
        self,
        queue: Queue,
        actor: Actor,
        filters: ListFilters | None = None,
        page: int = 1,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> ListResponse:
        """Page of a queue's items, most urgent first.

        ``limit=None`` uses the configured default; ``limit=0`` returns every
        match on a single page.
        """
        ensure_queue_access(actor, queue, self.enforce_permissions)
        if limit is None:
            limit = self.default_page_limit
        elif limit == 0:
            limit = None
        elif limit > self.max_page_limit:
            raise InvalidFilterError(f"limit must be <= {self.max_page_limit}")
        return await self.store.list(queue, filters, page=page, limit=limit, actor_id=actor.id, now=now)

    async def get(self, item_id: str, actor: Actor, now: datetime | None = None) -> ActionItemView:
        item = await self.store.require(item_id)
        ensure_queue_access(actor, item.queue, self.enforce_permissions)
        return self._view(item, now)

    async def get_notes(self, item_id: str, actor: Actor) -> list[ActionNote]:
        return await self.assignment.get_notes(item_id, actor)

    async def get_timeline(self, item_id: str, actor: Actor) -> list[TimelineEvent]:
        return await self.assignment.get_timeline(item_id, actor)

    async def get_summary(self, actor: Actor | None = None) -> ActionCenterSummary:
        return await self.summary.get_summary(actor)

    async def get_queue_summary(
        self, queue: Queue, actor: Actor, now: datetime | None = None
    ) -> QueueSummary:
        ensure_queue_access(actor, queue, self.enforce_permissions)
        return await self.summary.queue_summary(queue, now)

    # ── writes ────────────────────────────────────────────────────────────

    async def create_item(self, new_item: NewActionItem, now: datetime | None = None) -> ActionItemView:
        item = await self.store.create(new_item, now)
        self.summary.invalidate()
        return self._view(item, now)

    async def assign(
        self,
        item_id: str,
        actor: Actor,
        assignee_id: str | None = None,
        assignee_name: str | None = None,
        now: datetime | None = None,
    ) -> ActionItemView:
        item = await self.assignment.assign(item_id, actor, assignee_id, assignee_name, now=now)
        return self._view(item, now)

    async def assign_to_me(self, item_id: str, actor: Actor, now: datetime | None = None) -> ActionItemView:
        item = await self.assignment.assign_to_me(item_id, actor, now=now)
        return self._view(item, now)

    async def add_note(self, item_id: str, body: str, actor: Actor, now: datetime | None = None) -> ActionNote:
        return await self.assignment.add_note(item_id, body, actor, now=now)

    async def resolve(
        self,
        item_id: str,
        resolution: str,
        actor: Actor,
        note: str | None = None,
        now: datetime | None = None,
    ) -> ActionItemView:
        try:
            item = await self.dispatcher.resolve(item_id, resolution, actor, note=note, now=now)
        finally:
            self.summary.invalidate()
        return self._view(item, now)

    async def snooze(self, item_id: str, until: datetime, actor: Actor, now: datetime | None = None) -> ActionItemView:
        try:
            item = await self.dispatcher.snooze(item_id, until, actor, now=now)
        finally:
            self.summary.invalidate()
        return self._view(item, now)

    async def reopen(
        self, item_id: str, actor: Actor, reason: str | None = None, now: datetime | None = None
    ) -> ActionItemView:
        try:
            item = await self.dispatcher.reopen(item_id, actor, reason=reason, now=now)
        finally:
            self.summary.invalidate()
        return self._view(item, now)

    async def perform_action(
        self,
        item_id: str,
        action: str,
        actor: Actor,
        data: dict | None = None,
        now: datetime | None = None,
    ) -> ActionItemView:
        try:
            item = await self.dispatcher.perform_action(item_id, action, actor, data=data, now=now)
        finally:
            self.summary.invalidate()
        return self._view(item, now)

    async def retry_webhook(self, item_id: str, actor: Actor, now: datetime | None = None) -> RetryResult:
        try:
            return await self.dispatcher.retry_webhook(item_id, actor, now=now)
        finally:
            self.summary.invalidate()

    async def wake_due(self, now: datetime | None = None) -> list[str]:
        woken = await self.dispatcher.wake_due(now)
        if woken:
            self.summary.invalidate()
        return woken


def build_store(settings: Settings, redis_client=None) -> ActionStore:
    """Construct the configured store backend.

    The redis backend needs an initialized client; the memory backend is
    seeded with demo data when ``seed_demo_data`` is on.
    """
    thresholds = {"red_hours": settings.sla_red_hours, "amber_hours": settings.sla_amber_hours}

    if settings.store_backend == "redis":
        if redis_client is None:
            raise RuntimeError("store_backend=redis requires an initialized Redis client")
        return RedisActionStore(
            redis_client,
            key_prefix=settings.redis_key_prefix,
            lock_ttl=settings.item_lock_ttl_seconds,
            lock_wait_seconds=settings.item_lock_wait_seconds,
            **thresholds,
        )

    if settings.seed_demo_data:
        items, notes = demo_items(datetime.now(timezone.utc))
        logger.info("demo_data_seeded", item_count=len(items), note_count=len(notes))
        return InMemoryActionStore(seed=items, seed_notes=notes, **thresholds)
    return InMemoryActionStore(**thresholds)


def build_action_center(
    settings: Settings,
    store: ActionStore,
    redeliverer: WebhookRedeliverer | None = None,
) -> ActionCenter:
    return ActionCenter(
        store,
        redeliverer or build_redeliverer(settings),
        default_page_limit=settings.default_page_limit,
        max_page_limit=settings.max_page_limit,
        webhook_timeout=settings.webhook_retry_timeout_seconds,
        summary_cache_seconds=settings.summary_cache_seconds,
        enforce_permissions=settings.enforce_queue_permissions,
    )
