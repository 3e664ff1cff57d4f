"""SLA severity classification.

Pure domain function: severity is derived from the SLA deadline and the
current time on every read, never stored. The same item becomes more urgent
as its deadline approaches without any write occurring.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone

from action_center.domain.queues import Severity

# Default thresholds, overridable through settings
RED_HOURS = 2.0
AMBER_HOURS = 24.0


@dataclass(frozen=True)
class SlaStatus:
    """Computed urgency of an item at a point in time."""

    severity: Severity
    label: str
    overdue: bool
    hours_left: float


def classify_sla(
    sla_at: datetime | None,
    now: datetime | None = None,
    red_hours: float = RED_HOURS,
    amber_hours: float = AMBER_HOURS,
) -> SlaStatus | None:
    """Classify an SLA deadline into a severity badge.

    Args:
        sla_at: Deadline (None for unscheduled items)
        now: Current time (injectable for testing, defaults to datetime.now(timezone.utc))
        red_hours: Remaining time below which the item is red
        amber_hours: Remaining time below which the item is amber

    Returns:
        SlaStatus, or None when the item has no SLA.

    Rules:
        - deadline in the past: red, "Overdue"
        - under red_hours left: red, "{h}h left"
        - under amber_hours left: amber, "{h}h left"
        - otherwise: green, "{d}d left"
    """
    if sla_at is None:
        return None
    if now is None:
        now = datetime.now(timezone.utc)

    hours_left = (sla_at - now).total_seconds() / 3600

    if hours_left < 0:
        return SlaStatus(Severity.RED, "Overdue", True, hours_left)
    if hours_left < red_hours:
        return SlaStatus(Severity.RED, f"{math.floor(hours_left)}h left", False, hours_left)
    if hours_left < amber_hours:
        return SlaStatus(Severity.AMBER, f"{math.floor(hours_left)}h left", False, hours_left)
    return SlaStatus(Severity.GREEN, f"{math.floor(hours_left / 24)}d left", False, hours_left)


def compute_severity(
    sla_at: datetime | None,
    now: datetime | None = None,
    red_hours: float = RED_HOURS,
    amber_hours: float = AMBER_HOURS,
) -> Severity | None:
    status = classify_sla(sla_at, now, red_hours, amber_hours)
    return status.severity if status else None


def is_overdue(sla_at: datetime | None, now: datetime) -> bool:
    """True when the item has an SLA strictly before ``now``."""
    return sla_at is not None and sla_at < now
