"""AssignmentService — item ownership, operator notes, and the activity timeline.

Notes are append-only. Together with the dispatcher's system notes they form
the audit history of an item; ``get_timeline`` merges that history with the
synthesized "opened" event into one time-ordered list.
"""

from datetime import datetime, timezone

import structlog

from action_center.core.actor import Actor, ensure_queue_access
from action_center.core.exceptions import InvalidInputError
from action_center.domain.queues import ItemStatus
from action_center.domain.transitions import ItemStateMachine
from action_center.schemas.action_items import ActionItem, ActionNote, TimelineEvent
from action_center.store.base import ActionStore, build_note

logger = structlog.get_logger(__name__)


def _parse_meta_time(value: object) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


class AssignmentService:
    """Tracks who owns an item and its note thread."""

    def __init__(self, store: ActionStore, enforce_permissions: bool = True):
        self.store = store
        self.enforce_permissions = enforce_permissions

    async def assign(
        self,
        item_id: str,
        actor: Actor,
        assignee_id: str | None = None,
        assignee_name: str | None = None,
        now: datetime | None = None,
    ) -> ActionItem:
        """Set the item's owner. Defaults to the acting admin; status is unchanged.

        Re-assigning to the current owner is a no-op and writes nothing.

        Raises:
            ItemNotFoundError: unknown item id
            InvalidTransitionError: item already resolved
        """
        now = now or datetime.now(timezone.utc)
        if assignee_id is None:
            assignee_id, assignee_name = actor.id, actor.name
        assignee_name = assignee_name or assignee_id

        async with self.store.transaction(item_id) as txn:
            item = txn.item
            ensure_queue_access(actor, item.queue, self.enforce_permissions)
            ItemStateMachine.ensure_mutable(item_id, item.status, "assign")

            if item.assignee_id == assignee_id and item.assignee_name == assignee_name:
                return item

            updated = item.evolve(
                now,
                assignee_id=assignee_id,
                assignee_name=assignee_name,
                meta={"assignedBy": actor.id, "assignedAt": now.isoformat()},
            )
            txn.stage(updated)
            body = "Assigned to self" if assignee_id == actor.id else f"Assigned to {assignee_name}"
            txn.append_note(build_note(item_id, body, actor.id, actor.name, now, event="assigned"))

        logger.info(
            "action_item_assigned",
            item_id=item_id,
            assignee_id=assignee_id,
            previous_assignee_id=item.assignee_id,
            actor_id=actor.id,
        )
        return updated

    async def assign_to_me(self, item_id: str, actor: Actor, now: datetime | None = None) -> ActionItem:
        return await self.assign(item_id, actor, now=now)

    async def add_note(
        self,
        item_id: str,
        body: str,
        actor: Actor,
        now: datetime | None = None,
    ) -> ActionNote:
        """Append an operator note. Allowed on resolved items too (post-mortem comments).

        Raises:
            ItemNotFoundError: unknown item id
            InvalidInputError: blank body
        """
        body = body.strip()
        if not body:
            raise InvalidInputError("Note body must not be empty")
        now = now or datetime.now(timezone.utc)

        async with self.store.transaction(item_id) as txn:
            ensure_queue_access(actor, txn.item.queue, self.enforce_permissions)
            note = build_note(item_id, body, actor.id, actor.name, now)
            txn.append_note(note)

        logger.info("action_note_added", item_id=item_id, note_id=note.id, actor_id=actor.id)
        return note

    async def get_notes(self, item_id: str, actor: Actor | None = None) -> list[ActionNote]:
        """Full note thread, oldest first.

        Raises:
            ItemNotFoundError: unknown item id
        """
        item = await self.store.require(item_id)
        if actor is not None:
            ensure_queue_access(actor, item.queue, self.enforce_permissions)
        notes = await self.store.notes(item_id)
        # Stable sort keeps append order for notes written in the same instant
        return sorted(notes, key=lambda note: note.created_at)

    async def get_timeline(self, item_id: str, actor: Actor | None = None) -> list[TimelineEvent]:
        """Merged activity timeline: opened event, system events, and notes, oldest first."""
        item = await self.store.require(item_id)
        if actor is not None:
            ensure_queue_access(actor, item.queue, self.enforce_permissions)

        events = [
            TimelineEvent(
                timestamp=item.opened_at,
                type="opened",
                title="Item opened",
                body=item.title,
            )
        ]
        recorded: set[str] = set()

        for note in await self.store.notes(item_id):
            if note.kind == "system":
                event_type = note.event or "action"
                recorded.add(event_type)
                events.append(TimelineEvent(
                    timestamp=note.created_at,
                    type=event_type,
                    title=note.body,
                    actor_id=note.author_id,
                    actor_name=note.author_name,
                    note_id=note.id,
                ))
            else:
                events.append(TimelineEvent(
                    timestamp=note.created_at,
                    type="note",
                    title=f"Note from {note.author_name}",
                    body=note.body,
                    actor_id=note.author_id,
                    actor_name=note.author_name,
                    note_id=note.id,
                ))

        events.extend(self._events_from_meta(item, recorded))
        events.sort(key=lambda event: event.timestamp)
        return events

    @staticmethod
    def _events_from_meta(item: ActionItem, recorded: set[str]) -> list[TimelineEvent]:
        """Events for items imported with lifecycle meta but no matching system notes."""
        events: list[TimelineEvent] = []

        resolved_at = _parse_meta_time(item.meta.get("resolvedAt"))
        if item.status == ItemStatus.RESOLVED and "resolved" not in recorded and resolved_at:
            events.append(TimelineEvent(
                timestamp=resolved_at,
                type="resolved",
                title=f"Resolved: {item.meta.get('resolution', 'unspecified')}",
                actor_id=item.meta.get("resolvedBy"),
            ))

        snoozed_until = _parse_meta_time(item.meta.get("snoozedUntil"))
        if item.status == ItemStatus.SNOOZED and "snoozed" not in recorded and snoozed_until:
            snoozed_at = _parse_meta_time(item.meta.get("snoozedAt")) or item.updated_at
            events.append(TimelineEvent(
                timestamp=snoozed_at,
                type="snoozed",
                title=f"Snoozed until {snoozed_until.isoformat()}",
                actor_id=item.meta.get("snoozedBy"),
            ))

        return events
