"""ActionDispatcher — validated state transitions for action items.

Every operation runs inside a store transaction: the item is re-read under
its lock, the request is validated against the current state and the queue's
action vocabulary, and only then are the new state and the audit note(s)
staged. A rejected request never writes anything.
"""

import asyncio
from datetime import datetime, timezone

import structlog

from action_center.core.actor import Actor, ensure_queue_access
from action_center.core.exceptions import (
    ConcurrencyConflictError,
    ExternalActionFailure,
    InvalidInputError,
    InvalidTransitionError,
)
from action_center.domain.queues import QUEUE_ACTIONS, ActionEffect, ItemStatus, Queue, action_effect
from action_center.domain.transitions import ItemStateMachine
from action_center.schemas.action_items import ActionItem, RetryResult
from action_center.services.webhook_retry import WebhookRedeliverer
from action_center.store.base import ActionStore, build_note

logger = structlog.get_logger(__name__)

_EFFECT_STATUS = {
    ActionEffect.RESOLVE: ItemStatus.RESOLVED,
    ActionEffect.AWAIT_FOLLOWUP: ItemStatus.WAITING_ON_USER,
}

_EFFECT_EVENT = {
    ActionEffect.RESOLVE: "resolved",
    ActionEffect.AWAIT_FOLLOWUP: "waiting",
    ActionEffect.RECORD: "action",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActionDispatcher:
    """Executes resolve / snooze / reopen / queue-specific actions.

    Uses dependency injection (store and redeliverer) so tests construct a
    fresh in-memory store and a deterministic redeliverer.
    """

    def __init__(
        self,
        store: ActionStore,
        redeliverer: WebhookRedeliverer,
        webhook_timeout: float = 10.0,
        enforce_permissions: bool = True,
    ):
        self.store = store
        self.redeliverer = redeliverer
        self.webhook_timeout = webhook_timeout
        self.enforce_permissions = enforce_permissions

    async def resolve(
        self,
        item_id: str,
        resolution: str,
        actor: Actor,
        note: str | None = None,
        now: datetime | None = None,
    ) -> ActionItem:
        """Resolve an item, recording the resolution and an optional operator note together.

        Raises:
            ItemNotFoundError: unknown item id
            InvalidTransitionError: item already resolved
            InvalidInputError: blank resolution
        """
        resolution = resolution.strip()
        if not resolution:
            raise InvalidInputError("A resolution is required")
        now = now or _utcnow()

        async with self.store.transaction(item_id) as txn:
            item = txn.item
            ensure_queue_access(actor, item.queue, self.enforce_permissions)
            ItemStateMachine.ensure_transition(item_id, item.status, ItemStatus.RESOLVED, "resolve")

            updated = item.evolve(
                now,
                status=ItemStatus.RESOLVED,
                meta={
                    "resolution": resolution,
                    "resolvedBy": actor.id,
                    "resolvedByName": actor.name,
                    "resolvedAt": now.isoformat(),
                },
            )
            txn.stage(updated)
            txn.append_note(
                build_note(item_id, f"Resolved: {resolution}", actor.id, actor.name, now, event="resolved")
            )
            if note and note.strip():
                txn.append_note(build_note(item_id, note.strip(), actor.id, actor.name, now))

        logger.info(
            "action_item_resolved",
            item_id=item_id,
            queue=updated.queue.value,
            resolution=resolution,
            actor_id=actor.id,
            with_note=bool(note),
        )
        return updated

    async def snooze(
        self,
        item_id: str,
        until: datetime,
        actor: Actor,
        now: datetime | None = None,
    ) -> ActionItem:
        """Snooze an item until ``until``, which also becomes its new SLA deadline.

        Raises:
            ItemNotFoundError: unknown item id
            InvalidTransitionError: item already resolved
            InvalidInputError: ``until`` is naive or not in the future
        """
        now = now or _utcnow()
        if until.tzinfo is None:
            raise InvalidInputError("Snooze target must include a timezone")
        if until <= now:
            raise InvalidInputError("Snooze target must be in the future")

        async with self.store.transaction(item_id) as txn:
            item = txn.item
            ensure_queue_access(actor, item.queue, self.enforce_permissions)
            ItemStateMachine.ensure_transition(item_id, item.status, ItemStatus.SNOOZED, "snooze")

            updated = item.evolve(
                now,
                status=ItemStatus.SNOOZED,
                sla_at=until,
                meta={
                    "snoozedBy": actor.id,
                    "snoozedAt": now.isoformat(),
                    "snoozedUntil": until.isoformat(),
                },
            )
            txn.stage(updated)
            txn.append_note(
                build_note(
                    item_id,
                    f"Snoozed until {until.isoformat()}",
                    actor.id,
                    actor.name,
                    now,
                    event="snoozed",
                )
            )

        logger.info(
            "action_item_snoozed",
            item_id=item_id,
            queue=updated.queue.value,
            until=until.isoformat(),
            actor_id=actor.id,
        )
        return updated

    async def reopen(
        self,
        item_id: str,
        actor: Actor,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> ActionItem:
        """Move a snoozed or waiting item back to open (e.g. the user replied)."""
        now = now or _utcnow()

        async with self.store.transaction(item_id) as txn:
            item = txn.item
            ensure_queue_access(actor, item.queue, self.enforce_permissions)
            ItemStateMachine.ensure_transition(item_id, item.status, ItemStatus.OPEN, "reopen")

            updated = item.evolve(
                now,
                status=ItemStatus.OPEN,
                meta={"reopenedBy": actor.id, "reopenedAt": now.isoformat()},
            )
            txn.stage(updated)
            body = f"Reopened: {reason.strip()}" if reason and reason.strip() else "Reopened"
            txn.append_note(build_note(item_id, body, actor.id, actor.name, now, event="reopened"))

        logger.info("action_item_reopened", item_id=item_id, actor_id=actor.id, previous_status=item.status.value)
        return updated

    async def perform_action(
        self,
        item_id: str,
        action: str,
        actor: Actor,
        data: dict | None = None,
        now: datetime | None = None,
    ) -> ActionItem:
        """Execute a queue-specific action.

        Terminal actions (approve, reject, ...) resolve the item; follow-up
        actions (request_info, change_method, reschedule) park it in
        ``waiting_on_user``; record-only actions (view_payload) leave the status
        alone. Each appends the system note "Action performed: {action}".

        Raises:
            ItemNotFoundError: unknown item id
            InvalidTransitionError: action not in the queue's vocabulary, or item resolved
            ExternalActionFailure: webhook redelivery failed or timed out (nothing written)
        """
        now = now or _utcnow()

        async with self.store.transaction(item_id) as txn:
            item = txn.item
            ensure_queue_access(actor, item.queue, self.enforce_permissions)

            effect = action_effect(item.queue, action)
            if effect is None:
                allowed = ", ".join(QUEUE_ACTIONS[item.queue])
                raise InvalidTransitionError(
                    item_id,
                    f"Action '{action}' is not allowed for queue '{item.queue.value}' (allowed: {allowed})",
                )

            target = _EFFECT_STATUS.get(effect)
            if target is None:
                ItemStateMachine.ensure_mutable(item_id, item.status, action)
            else:
                ItemStateMachine.ensure_transition(item_id, item.status, target, action)

            meta = {
                "action": action,
                "actionData": data,
                "actionBy": actor.id,
                "actionAt": now.isoformat(),
            }

            if item.queue == Queue.WEBHOOKS and action == "retry":
                message = await self._redeliver(item)
                meta.update(retriedAt=now.isoformat(), retriedBy=actor.id, retryMessage=message)

            if effect == ActionEffect.RESOLVE:
                meta.update(
                    resolution=action,
                    resolvedBy=actor.id,
                    resolvedByName=actor.name,
                    resolvedAt=now.isoformat(),
                )
            elif effect == ActionEffect.AWAIT_FOLLOWUP:
                meta.update(awaitingAction=action, awaitingSince=now.isoformat())

            changes = {"status": target} if target else {}
            updated = item.evolve(now, meta=meta, **changes)
            txn.stage(updated)
            txn.append_note(
                build_note(
                    item_id,
                    f"Action performed: {action}",
                    actor.id,
                    actor.name,
                    now,
                    event=_EFFECT_EVENT[effect],
                )
            )

        logger.info(
            "action_performed",
            item_id=item_id,
            queue=updated.queue.value,
            action=action,
            status=updated.status.value,
            actor_id=actor.id,
        )
        return updated

    async def retry_webhook(
        self,
        item_id: str,
        actor: Actor,
        now: datetime | None = None,
    ) -> RetryResult:
        """Redeliver a failed webhook.

        A failed or timed-out redelivery is an expected outcome: it comes back
        as ``ok=False`` and leaves the item untouched so the caller can retry.

        Raises:
            ItemNotFoundError: unknown item id
            InvalidTransitionError: item is not a webhook item, or already resolved
        """
        item = await self.store.require(item_id)
        if item.queue != Queue.WEBHOOKS:
            raise InvalidTransitionError(item_id, f"Action item {item_id} is not a webhook")

        try:
            updated = await self.perform_action(item_id, "retry", actor, now=now)
        except ExternalActionFailure as exc:
            return RetryResult(ok=False, message=str(exc))

        return RetryResult(ok=True, message=updated.meta.get("retryMessage"))

    async def wake_due(self, now: datetime | None = None) -> list[str]:
        """Reopen every snoozed item whose snooze target has passed.

        Items locked by another writer are skipped and picked up on the next run.

        Returns:
            Ids of the items that were woken
        """
        now = now or _utcnow()
        system = Actor.system()
        woken: list[str] = []

        for item in await self.store.items():
            if not self._snooze_elapsed(item, now):
                continue
            try:
                if await self._wake(item.id, system, now):
                    woken.append(item.id)
            except ConcurrencyConflictError:
                logger.info("snooze_wake_skipped_locked", item_id=item.id)

        if woken:
            logger.info("snoozed_items_woken", count=len(woken), item_ids=woken)
        return woken

    @staticmethod
    def _snooze_elapsed(item: ActionItem, now: datetime) -> bool:
        return item.status == ItemStatus.SNOOZED and item.sla_at is not None and item.sla_at <= now

    async def _wake(self, item_id: str, system: Actor, now: datetime) -> bool:
        async with self.store.transaction(item_id) as txn:
            # Re-check under the lock: another operator may have acted meanwhile
            if not self._snooze_elapsed(txn.item, now):
                return False
            txn.stage(txn.item.evolve(now, status=ItemStatus.OPEN, meta={"wokeAt": now.isoformat()}))
            txn.append_note(
                build_note(item_id, "Snooze expired, item reopened", system.id, system.name, now, event="woken")
            )
        return True

    async def _redeliver(self, item: ActionItem) -> str:
        """Run the webhook redelivery bounded by ``webhook_timeout``."""
        try:
            return await asyncio.wait_for(self.redeliverer.redeliver(item), timeout=self.webhook_timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("webhook_retry_timeout", item_id=item.id, timeout_seconds=self.webhook_timeout)
            raise ExternalActionFailure(
                f"Webhook retry timed out after {self.webhook_timeout:g}s"
            ) from exc
        except ExternalActionFailure as exc:
            logger.warning("webhook_retry_failed", item_id=item.id, ref_id=item.ref_id, error=str(exc))
            raise
