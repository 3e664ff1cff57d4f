"""Pydantic schemas for action items, notes, list queries, and summaries.

Python attributes are snake_case; JSON uses camelCase aliases (refId,
slaAt, totalsByReason, ...) which is what the operator dashboard consumes.
Monetary amounts are integers in minor currency units.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from action_center.domain.queues import ItemStatus, Queue, RefType, Severity
from action_center.domain.severity import AMBER_HOURS, RED_HOURS, classify_sla

# Lifecycle event recorded by a system note
NoteEvent = Literal["assigned", "snoozed", "woken", "waiting", "reopened", "action", "resolved"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ActionItem(CamelModel):
    """Stored shape of an action item.

    Severity is deliberately absent: it is derived from ``sla_at`` at read
    time (see ActionItemView).
    """

    id: str
    queue: Queue
    ref_type: RefType
    ref_id: str
    title: str
    who_name: str | None = None
    who_phone: str | None = None
    reason_code: str
    status: ItemStatus = ItemStatus.OPEN
    sla_at: datetime | None = None
    amount_at_risk: int | None = Field(default=None, ge=0)
    assignee_id: str | None = None
    assignee_name: str | None = None
    opened_at: datetime
    updated_at: datetime
    meta: dict[str, Any] = Field(default_factory=dict)

    def evolve(self, now: datetime, meta: dict[str, Any] | None = None, **changes: Any) -> "ActionItem":
        """Return a copy with ``changes`` applied, ``meta`` shallow-merged, and updated_at bumped.

        Existing meta keys are kept unless overwritten by a key of the same
        name; meta is never replaced wholesale.
        """
        update: dict[str, Any] = {**changes, "updated_at": now}
        if meta:
            update["meta"] = {**self.meta, **meta}
        return self.model_copy(update=update, deep=True)


class ActionItemView(ActionItem):
    """Action item as returned to callers, with SLA severity computed for ``now``."""

    severity: Severity | None = None
    sla_label: str | None = None
    overdue: bool = False

    @classmethod
    def from_item(
        cls,
        item: ActionItem,
        now: datetime,
        red_hours: float = RED_HOURS,
        amber_hours: float = AMBER_HOURS,
    ) -> "ActionItemView":
        sla = classify_sla(item.sla_at, now, red_hours, amber_hours)
        return cls(
            **item.model_dump(),
            severity=sla.severity if sla else None,
            sla_label=sla.label if sla else None,
            overdue=sla.overdue if sla else False,
        )


class NewActionItem(CamelModel):
    """Item creation event emitted by an originating collaborator."""

    queue: Queue
    ref_type: RefType
    ref_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    who_name: str | None = None
    who_phone: str | None = None
    reason_code: str
    sla_at: AwareDatetime | None = None
    amount_at_risk: int | None = Field(default=None, ge=0)
    meta: dict[str, Any] = Field(default_factory=dict)


class ActionNote(CamelModel):
    """Immutable, append-only note on an action item.

    ``kind`` is "system" for notes written by the dispatcher
    (e.g. "Action performed: approve") and "note" for operator notes.
    System notes also carry the lifecycle ``event`` they record, which is
    how the timeline types them.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    action_item_id: str
    body: str
    author_id: str
    author_name: str
    created_at: datetime
    kind: Literal["note", "system"] = "note"
    event: NoteEvent | None = None


class ListFilters(CamelModel):
    """Compound (AND) filter for list queries. Every field is optional."""

    assigned_to: Literal["me", "unassigned", "all"] | None = None
    overdue: bool = False
    severity: list[Severity] | None = None
    reason_code: list[str] | None = None
    search: str | None = None
    date_from: AwareDatetime | None = None  # on opened_at, inclusive
    date_to: AwareDatetime | None = None
    status: list[ItemStatus] | None = None  # None = every non-resolved status


class ListResponse(CamelModel):
    items: list[ActionItemView] = Field(default_factory=list)
    page: int
    limit: int | None
    total: int
    totals_by_reason: dict[str, int] = Field(default_factory=dict)


class ActionCenterSummary(CamelModel):
    """Open-item badge counts across queues."""

    total_open: int
    queues: dict[Queue, int]


class QueueSummary(CamelModel):
    """Per-queue breakdown of non-resolved items by status and severity."""

    queue: Queue
    total: int
    by_status: dict[ItemStatus, int]
    by_severity: dict[Severity, int]
    unscheduled: int = 0


class RetryResult(CamelModel):
    ok: bool
    message: str | None = None


class TimelineEvent(CamelModel):
    """Single entry of an item's merged activity timeline."""

    timestamp: datetime
    type: Literal["opened", "note"] | NoteEvent
    title: str
    body: str | None = None
    actor_id: str | None = None
    actor_name: str | None = None
    note_id: str | None = None
