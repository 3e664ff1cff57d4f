"""Tests for ActionDispatcher — the action item state machine.

Covers:
- resolve / snooze / reopen transitions and their meta + system notes
- queue-specific actions with resolve / await-followup / record effects
- terminality: nothing mutates a resolved item
- validate-then-write: rejected requests leave state and notes untouched
- webhook redelivery failure and timeout produce no state change
- snooze wake
"""

import asyncio
from datetime import timedelta

import pytest

from action_center.core.exceptions import (
    ExternalActionFailure,
    InvalidInputError,
    InvalidTransitionError,
    ItemNotFoundError,
    PermissionDeniedError,
)
from action_center.domain.queues import ItemStatus
from action_center.services.dispatcher import ActionDispatcher
from factories import NOW, StubRedeliverer

pytestmark = pytest.mark.unit


@pytest.fixture
def dispatcher(store, redeliverer) -> ActionDispatcher:
    return ActionDispatcher(store, redeliverer, webhook_timeout=0.5)


async def _snapshot(store, item_id):
    return await store.get(item_id), await store.notes(item_id)


# ============================================================================
# resolve
# ============================================================================


class TestResolve:
    async def test_resolve_records_meta_and_system_note(self, dispatcher, store, admin):
        item = await dispatcher.resolve("AC-KYC00001", "verified manually", admin, now=NOW)

        assert item.status == ItemStatus.RESOLVED
        assert item.meta["resolution"] == "verified manually"
        assert item.meta["resolvedBy"] == admin.id
        assert item.meta["resolvedAt"] == NOW.isoformat()
        assert item.updated_at == NOW

        notes = await store.notes("AC-KYC00001")
        assert [(n.kind, n.event, n.body) for n in notes] == [
            ("system", "resolved", "Resolved: verified manually"),
        ]

    async def test_resolve_with_note_appends_both(self, dispatcher, store, admin):
        await dispatcher.resolve("AC-KYC00001", "approved", admin, note="Checked against passport", now=NOW)

        notes = await store.notes("AC-KYC00001")
        assert [n.body for n in notes] == ["Resolved: approved", "Checked against passport"]
        assert notes[1].kind == "note"
        assert notes[1].author_id == admin.id

    async def test_resolve_twice_is_rejected_without_writes(self, dispatcher, store, admin):
        await dispatcher.resolve("AC-KYC00001", "approved", admin, now=NOW)
        before = await _snapshot(store, "AC-KYC00001")

        with pytest.raises(InvalidTransitionError):
            await dispatcher.resolve("AC-KYC00001", "again", admin, now=NOW + timedelta(minutes=1))

        assert await _snapshot(store, "AC-KYC00001") == before

    async def test_blank_resolution_rejected(self, dispatcher, admin):
        with pytest.raises(InvalidInputError):
            await dispatcher.resolve("AC-KYC00001", "   ", admin, now=NOW)

    async def test_unknown_item(self, dispatcher, admin):
        with pytest.raises(ItemNotFoundError):
            await dispatcher.resolve("AC-NOPE0000", "x", admin, now=NOW)

    async def test_meta_from_intake_survives_resolve(self, dispatcher, store, admin):
        async with store.transaction("AC-KYC00001") as txn:
            txn.stage(txn.item.evolve(NOW, meta={"documentUrl": "s3://doc"}))

        item = await dispatcher.resolve("AC-KYC00001", "approved", admin, now=NOW)
        assert item.meta["documentUrl"] == "s3://doc"


# ============================================================================
# snooze / reopen
# ============================================================================


class TestSnooze:
    async def test_snooze_moves_sla_and_status(self, dispatcher, store, admin):
        until = NOW + timedelta(hours=4)
        item = await dispatcher.snooze("AC-KYC00001", until, admin, now=NOW)

        assert item.status == ItemStatus.SNOOZED
        assert item.sla_at == until
        assert item.meta["snoozedUntil"] == until.isoformat()
        notes = await store.notes("AC-KYC00001")
        assert notes[-1].event == "snoozed"

    async def test_snooze_again_moves_wake_time(self, dispatcher, admin):
        await dispatcher.snooze("AC-KYC00001", NOW + timedelta(hours=1), admin, now=NOW)
        item = await dispatcher.snooze("AC-KYC00001", NOW + timedelta(hours=6), admin, now=NOW)
        assert item.sla_at == NOW + timedelta(hours=6)

    async def test_snooze_in_the_past_rejected(self, dispatcher, admin):
        with pytest.raises(InvalidInputError):
            await dispatcher.snooze("AC-KYC00001", NOW - timedelta(minutes=5), admin, now=NOW)

    async def test_snooze_naive_datetime_rejected(self, dispatcher, admin):
        naive = (NOW + timedelta(hours=1)).replace(tzinfo=None)
        with pytest.raises(InvalidInputError):
            await dispatcher.snooze("AC-KYC00001", naive, admin, now=NOW)

    async def test_snooze_resolved_rejected(self, dispatcher, admin):
        await dispatcher.resolve("AC-KYC00001", "done", admin, now=NOW)
        with pytest.raises(InvalidTransitionError):
            await dispatcher.snooze("AC-KYC00001", NOW + timedelta(hours=1), admin, now=NOW)


class TestReopen:
    async def test_reopen_snoozed(self, dispatcher, store, admin):
        await dispatcher.snooze("AC-KYC00001", NOW + timedelta(hours=1), admin, now=NOW)
        item = await dispatcher.reopen("AC-KYC00001", admin, reason="customer called", now=NOW)

        assert item.status == ItemStatus.OPEN
        assert (await store.notes("AC-KYC00001"))[-1].body == "Reopened: customer called"

    async def test_reopen_open_item_rejected(self, dispatcher, admin):
        with pytest.raises(InvalidTransitionError):
            await dispatcher.reopen("AC-KYC00001", admin, now=NOW)

    async def test_reopen_resolved_rejected(self, dispatcher, admin):
        await dispatcher.resolve("AC-KYC00001", "done", admin, now=NOW)
        with pytest.raises(InvalidTransitionError):
            await dispatcher.reopen("AC-KYC00001", admin, now=NOW)


# ============================================================================
# perform_action
# ============================================================================


class TestPerformAction:
    async def test_terminal_action_resolves(self, dispatcher, store, admin):
        item = await dispatcher.perform_action("AC-KYC00001", "approve", admin, data={"tier": 2}, now=NOW)

        assert item.status == ItemStatus.RESOLVED
        assert item.meta["action"] == "approve"
        assert item.meta["actionData"] == {"tier": 2}
        assert item.meta["resolution"] == "approve"
        notes = await store.notes("AC-KYC00001")
        assert notes[-1].body == "Action performed: approve"
        assert notes[-1].event == "resolved"

    async def test_request_info_waits_on_user(self, dispatcher, store, admin):
        item = await dispatcher.perform_action("AC-KYC00001", "request_info", admin, now=NOW)

        assert item.status == ItemStatus.WAITING_ON_USER
        assert item.meta["awaitingAction"] == "request_info"
        assert (await store.notes("AC-KYC00001"))[-1].event == "waiting"

    async def test_waiting_item_can_still_be_resolved(self, dispatcher, admin):
        await dispatcher.perform_action("AC-KYC00001", "request_info", admin, now=NOW)
        item = await dispatcher.perform_action("AC-KYC00001", "approve", admin, now=NOW)
        assert item.status == ItemStatus.RESOLVED

    async def test_view_payload_records_without_status_change(self, dispatcher, store, admin):
        item = await dispatcher.perform_action("AC-WHK00001", "view_payload", admin, now=NOW)

        assert item.status == ItemStatus.OPEN
        assert item.meta["action"] == "view_payload"
        assert (await store.notes("AC-WHK00001"))[-1].event == "action"

    async def test_action_outside_vocabulary_rejected_without_writes(self, dispatcher, store, admin):
        before = await _snapshot(store, "AC-WHK00001")

        with pytest.raises(InvalidTransitionError, match="not allowed"):
            await dispatcher.perform_action("AC-WHK00001", "approve", admin, now=NOW)

        assert await _snapshot(store, "AC-WHK00001") == before

    @pytest.mark.parametrize("action", ["approve", "reject", "request_info"])
    async def test_no_action_mutates_resolved_item(self, dispatcher, store, admin, action):
        await dispatcher.resolve("AC-KYC00001", "done", admin, now=NOW)
        before = await _snapshot(store, "AC-KYC00001")

        with pytest.raises(InvalidTransitionError):
            await dispatcher.perform_action("AC-KYC00001", action, admin, now=NOW)

        assert await _snapshot(store, "AC-KYC00001") == before

    async def test_permission_denied_for_foreign_queue(self, dispatcher, store, content_admin):
        before = await _snapshot(store, "AC-KYC00001")

        with pytest.raises(PermissionDeniedError):
            await dispatcher.perform_action("AC-KYC00001", "approve", content_admin, now=NOW)

        assert await _snapshot(store, "AC-KYC00001") == before

    async def test_concurrent_terminal_actions_resolve_once(self, dispatcher, store, admin, other_admin):
        """Two operators race to resolve: exactly one wins, the other sees a terminal item."""
        results = await asyncio.gather(
            dispatcher.perform_action("AC-KYC00001", "approve", admin, now=NOW),
            dispatcher.perform_action("AC-KYC00001", "reject", other_admin, now=NOW),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidTransitionError)
        resolved_notes = [n for n in await store.notes("AC-KYC00001") if n.event == "resolved"]
        assert len(resolved_notes) == 1


# ============================================================================
# webhook redelivery
# ============================================================================


class TestRetryWebhook:
    async def test_successful_retry_resolves(self, dispatcher, store, admin, redeliverer):
        result = await dispatcher.retry_webhook("AC-WHK00001", admin, now=NOW)

        assert result.ok is True
        assert result.message == "Webhook delivered successfully"
        assert redeliverer.calls == ["AC-WHK00001"]
        item = await store.get("AC-WHK00001")
        assert item.status == ItemStatus.RESOLVED
        assert item.meta["retriedBy"] == admin.id

    async def test_failed_retry_changes_nothing(self, store, admin):
        dispatcher = ActionDispatcher(store, StubRedeliverer(outcome="fail"))
        before = await _snapshot(store, "AC-WHK00001")

        result = await dispatcher.retry_webhook("AC-WHK00001", admin, now=NOW)

        assert result.ok is False
        assert "503" in result.message
        assert await _snapshot(store, "AC-WHK00001") == before

    async def test_timed_out_retry_changes_nothing(self, store, admin):
        dispatcher = ActionDispatcher(store, StubRedeliverer(delay=1.0), webhook_timeout=0.05)
        before = await _snapshot(store, "AC-WHK00001")

        result = await dispatcher.retry_webhook("AC-WHK00001", admin, now=NOW)

        assert result.ok is False
        assert "timed out" in result.message
        assert await _snapshot(store, "AC-WHK00001") == before

    async def test_retry_action_raises_external_failure(self, store, admin):
        """Through perform_action the failure surfaces as a retryable error."""
        dispatcher = ActionDispatcher(store, StubRedeliverer(outcome="fail"))

        with pytest.raises(ExternalActionFailure) as exc_info:
            await dispatcher.perform_action("AC-WHK00001", "retry", admin, now=NOW)
        assert exc_info.value.retryable is True

    async def test_retry_webhook_on_non_webhook_item(self, dispatcher, admin, redeliverer):
        with pytest.raises(InvalidTransitionError):
            await dispatcher.retry_webhook("AC-KYC00001", admin, now=NOW)
        assert redeliverer.calls == []

    async def test_payout_retry_does_not_redeliver(self, dispatcher, admin, redeliverer):
        item = await dispatcher.perform_action("AC-PAY00001", "retry", admin, now=NOW)
        assert item.status == ItemStatus.RESOLVED
        assert redeliverer.calls == []


# ============================================================================
# snooze wake
# ============================================================================


class TestWakeDue:
    async def test_elapsed_snooze_reopens_with_system_note(self, dispatcher, store, admin):
        await dispatcher.snooze("AC-KYC00001", NOW + timedelta(hours=1), admin, now=NOW)
        await dispatcher.snooze("AC-KYC00002", NOW + timedelta(hours=5), admin, now=NOW)

        woken = await dispatcher.wake_due(NOW + timedelta(hours=2))

        assert woken == ["AC-KYC00001"]
        item = await store.get("AC-KYC00001")
        assert item.status == ItemStatus.OPEN
        note = (await store.notes("AC-KYC00001"))[-1]
        assert note.event == "woken"
        assert note.author_id == "system"
        assert (await store.get("AC-KYC00002")).status == ItemStatus.SNOOZED

    async def test_nothing_due(self, dispatcher):
        assert await dispatcher.wake_due(NOW) == []
