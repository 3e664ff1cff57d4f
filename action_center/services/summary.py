"""SummaryAggregator — open-item badge counts and per-queue breakdowns.

Counts are recomputed from the store on demand. A short TTL cache bounds
the cost of dashboards polling the badge; writes through the ActionCenter
invalidate it so an operator sees their own change on the next poll.
"""

import time
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timezone

from action_center.core.actor import Actor
from action_center.domain.queues import ACTIVE_STATUSES, ItemStatus, Queue, Severity, permitted_queues
from action_center.domain.severity import compute_severity
from action_center.schemas.action_items import ActionCenterSummary, QueueSummary
from action_center.store.base import ActionStore


class SummaryAggregator:
    """Cross-queue open counts (status ``open`` only, not snoozed or waiting)."""

    def __init__(
        self,
        store: ActionStore,
        cache_seconds: float = 5.0,
        enforce_permissions: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.cache_seconds = cache_seconds
        self.enforce_permissions = enforce_permissions
        self.clock = clock
        self._cache: dict[tuple[Queue, ...], tuple[float, ActionCenterSummary]] = {}

    def _visible_queues(self, actor: Actor | None) -> tuple[Queue, ...]:
        if actor is None or not self.enforce_permissions:
            return tuple(Queue)
        return permitted_queues(actor.role)

    async def get_summary(self, actor: Actor | None = None) -> ActionCenterSummary:
        queues = self._visible_queues(actor)

        if self.cache_seconds > 0:
            cached = self._cache.get(queues)
            if cached and self.clock() - cached[0] < self.cache_seconds:
                return cached[1]

        counts = {queue: 0 for queue in queues}
        for item in await self.store.items():
            if item.status == ItemStatus.OPEN and item.queue in counts:
                counts[item.queue] += 1

        summary = ActionCenterSummary(total_open=sum(counts.values()), queues=counts)
        if self.cache_seconds > 0:
            self._cache[queues] = (self.clock(), summary)
        return summary

    def invalidate(self) -> None:
        self._cache.clear()

    async def queue_summary(self, queue: Queue, now: datetime | None = None) -> QueueSummary:
        """Non-resolved items of one queue broken down by status and current severity."""
        now = now or datetime.now(timezone.utc)
        active = [item for item in await self.store.items(queue) if item.status in ACTIVE_STATUSES]

        by_status = Counter(item.status for item in active)
        by_severity: Counter = Counter()
        unscheduled = 0
        for item in active:
            severity = compute_severity(item.sla_at, now, self.store.red_hours, self.store.amber_hours)
            if severity is None:
                unscheduled += 1
            else:
                by_severity[severity] += 1

        return QueueSummary(
            queue=queue,
            total=len(active),
            by_status={status: by_status.get(status, 0) for status in ACTIVE_STATUSES},
            by_severity={severity: by_severity.get(severity, 0) for severity in Severity},
            unscheduled=unscheduled,
        )
