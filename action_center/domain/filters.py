"""Filter engine for action item lists.

Applies a conjunction of independent predicates to a candidate set, orders
the result by urgency, and computes reason-code facets over the full
filtered set. Pure functions: no store access, time is injected.
"""

from collections import Counter
from collections.abc import Iterable
from datetime import datetime

from action_center.core.exceptions import InvalidFilterError
from action_center.domain.queues import ACTIVE_STATUSES, Queue, validate_reason_codes
from action_center.domain.severity import AMBER_HOURS, RED_HOURS, compute_severity, is_overdue
from action_center.schemas.action_items import ActionItem, ListFilters

_SEARCH_FIELDS = ("id", "ref_id", "who_name", "who_phone", "title")


def validate_filters(queue: Queue, filters: ListFilters) -> None:
    """Reject filter values outside the queue's closed sets before any matching happens.

    Raises:
        InvalidReasonCodeError: a reason code is not defined for ``queue``
        InvalidFilterError: the date range is inverted
    """
    if filters.reason_code:
        validate_reason_codes(queue, filters.reason_code)
    if filters.date_from and filters.date_to and filters.date_from > filters.date_to:
        raise InvalidFilterError("date_from must not be after date_to")


def _matches_search(item: ActionItem, needle: str) -> bool:
    for field in _SEARCH_FIELDS:
        value = getattr(item, field)
        if value and needle in value.lower():
            return True
    return False


def matches(
    item: ActionItem,
    filters: ListFilters,
    actor_id: str | None,
    now: datetime,
    red_hours: float = RED_HOURS,
    amber_hours: float = AMBER_HOURS,
) -> bool:
    """True when ``item`` satisfies every predicate set in ``filters``."""
    statuses = filters.status or ACTIVE_STATUSES
    if item.status not in statuses:
        return False

    if filters.assigned_to == "me":
        if actor_id is None or item.assignee_id != actor_id:
            return False
    elif filters.assigned_to == "unassigned":
        if item.assignee_id:
            return False

    if filters.overdue and not is_overdue(item.sla_at, now):
        return False

    if filters.severity:
        severity = compute_severity(item.sla_at, now, red_hours, amber_hours)
        if severity not in filters.severity:
            return False

    if filters.reason_code and item.reason_code not in filters.reason_code:
        return False

    if filters.search:
        needle = filters.search.strip().lower()
        if needle and not _matches_search(item, needle):
            return False

    if filters.date_from and item.opened_at < filters.date_from:
        return False
    if filters.date_to and item.opened_at > filters.date_to:
        return False

    return True


def urgency_key(item: ActionItem) -> tuple:
    """Sort key: soonest SLA first, items without an SLA last, then oldest first."""
    return (
        item.sla_at is None,
        item.sla_at.timestamp() if item.sla_at else 0.0,
        item.opened_at.timestamp(),
        item.id,
    )


def apply_filters(
    items: Iterable[ActionItem],
    filters: ListFilters,
    actor_id: str | None,
    now: datetime,
    red_hours: float = RED_HOURS,
    amber_hours: float = AMBER_HOURS,
) -> list[ActionItem]:
    """Filter and order ``items`` by urgency."""
    matched = [
        item for item in items
        if matches(item, filters, actor_id, now, red_hours, amber_hours)
    ]
    matched.sort(key=urgency_key)
    return matched


def totals_by_reason(items: Iterable[ActionItem]) -> dict[str, int]:
    return dict(Counter(item.reason_code for item in items))


def paginate(items: list[ActionItem], page: int, limit: int | None) -> list[ActionItem]:
    """Offset pagination, 1-indexed pages. ``limit=None`` returns everything from the offset."""
    if page < 1:
        raise InvalidFilterError("page must be >= 1")
    if limit is None:
        return items if page == 1 else []
    if limit < 1:
        raise InvalidFilterError("limit must be >= 1")
    start = (page - 1) * limit
    return items[start:start + limit]
