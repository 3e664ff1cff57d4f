"""Tests for SummaryAggregator: badge counts, caching, per-queue breakdowns."""

from datetime import timedelta

import pytest

from action_center.domain.queues import ItemStatus, Queue, Severity
from action_center.schemas.action_items import ListFilters
from action_center.services.dispatcher import ActionDispatcher
from action_center.services.summary import SummaryAggregator
from factories import NOW

pytestmark = pytest.mark.unit


class FakeClock:
    def __init__(self):
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


@pytest.fixture
def dispatcher(store, redeliverer) -> ActionDispatcher:
    return ActionDispatcher(store, redeliverer)


async def test_counts_open_items_per_queue(store):
    summary = await SummaryAggregator(store, cache_seconds=0).get_summary()

    assert summary.total_open == 9
    assert summary.queues[Queue.KYC] == 4
    assert summary.queues[Queue.WEBHOOKS] == 1


async def test_snoozed_waiting_and_resolved_not_counted(store, dispatcher, admin):
    """Only status == open counts toward the badge."""
    await dispatcher.snooze("AC-KYC00001", NOW + timedelta(hours=1), admin, now=NOW)
    await dispatcher.perform_action("AC-KYC00002", "request_info", admin, now=NOW)
    await dispatcher.resolve("AC-KYC00003", "done", admin, now=NOW)

    summary = await SummaryAggregator(store, cache_seconds=0).get_summary()

    assert summary.queues[Queue.KYC] == 1
    assert summary.total_open == 6


async def test_total_equals_sum_of_queues(store):
    summary = await SummaryAggregator(store, cache_seconds=0).get_summary()
    assert summary.total_open == sum(summary.queues.values())


async def test_summary_restricted_to_permitted_queues(store, content_admin):
    summary = await SummaryAggregator(store, cache_seconds=0).get_summary(content_admin)

    assert set(summary.queues) == {Queue.CONTENT_FLAGS}
    assert summary.total_open == 1


async def test_cache_served_until_invalidated(store, dispatcher, admin):
    clock = FakeClock()
    aggregator = SummaryAggregator(store, cache_seconds=5, clock=clock)

    assert (await aggregator.get_summary()).total_open == 9
    await dispatcher.resolve("AC-KYC00001", "done", admin, now=NOW)

    assert (await aggregator.get_summary()).total_open == 9

    aggregator.invalidate()
    assert (await aggregator.get_summary()).total_open == 8


async def test_cache_expires(store, dispatcher, admin):
    clock = FakeClock()
    aggregator = SummaryAggregator(store, cache_seconds=5, clock=clock)

    await aggregator.get_summary()
    await dispatcher.resolve("AC-KYC00001", "done", admin, now=NOW)
    clock.value += 6

    assert (await aggregator.get_summary()).total_open == 8


async def test_queue_summary_breakdown(store, dispatcher, admin):
    await dispatcher.perform_action("AC-KYC00002", "request_info", admin, now=NOW)
    await dispatcher.resolve("AC-KYC00003", "done", admin, now=NOW)

    breakdown = await SummaryAggregator(store).queue_summary(Queue.KYC, now=NOW)

    assert breakdown.total == 3
    assert breakdown.by_status[ItemStatus.OPEN] == 2
    assert breakdown.by_status[ItemStatus.WAITING_ON_USER] == 1
    assert breakdown.by_severity[Severity.RED] == 2
    assert breakdown.by_severity[Severity.AMBER] == 0
    assert breakdown.unscheduled == 1


async def test_summary_matches_unbounded_open_list(store, dispatcher, admin):
    """summary.queues[q] equals list(q, status=open, limit=None).total for every queue."""
    await dispatcher.snooze("AC-KYC00001", NOW + timedelta(hours=1), admin, now=NOW)
    await dispatcher.resolve("AC-PAY00001", "paid", admin, now=NOW)

    summary = await SummaryAggregator(store, cache_seconds=0).get_summary()

    for queue in Queue:
        listed = await store.list(queue, ListFilters(status=[ItemStatus.OPEN]), limit=None, now=NOW)
        assert summary.queues[queue] == listed.total
