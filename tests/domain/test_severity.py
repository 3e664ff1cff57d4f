"""Tests for SLA severity classification.

Severity is a pure function of (sla_at, now): these tests pin the
thresholds, the operator-facing labels, and the boundary behaviour.
"""

from datetime import timedelta

import pytest

from action_center.domain.queues import Severity
from action_center.domain.severity import classify_sla, compute_severity, is_overdue
from factories import NOW

pytestmark = pytest.mark.unit


class TestClassifySla:
    """classify_sla thresholds and labels."""

    def test_no_sla_is_unclassified(self):
        """Items without a deadline have no severity at all."""
        assert classify_sla(None, NOW) is None
        assert compute_severity(None, NOW) is None

    def test_past_deadline_is_overdue_red(self):
        status = classify_sla(NOW - timedelta(minutes=1), NOW)
        assert status.severity == Severity.RED
        assert status.label == "Overdue"
        assert status.overdue is True

    def test_under_two_hours_is_red(self):
        status = classify_sla(NOW + timedelta(hours=1, minutes=30), NOW)
        assert status.severity == Severity.RED
        assert status.label == "1h left"
        assert status.overdue is False

    def test_deadline_exactly_now_is_red_but_not_overdue(self):
        """Zero time left is red; overdue requires the deadline to be strictly in the past."""
        status = classify_sla(NOW, NOW)
        assert status.severity == Severity.RED
        assert status.overdue is False
        assert is_overdue(NOW, NOW) is False

    def test_exactly_two_hours_is_amber(self):
        status = classify_sla(NOW + timedelta(hours=2), NOW)
        assert status.severity == Severity.AMBER
        assert status.label == "2h left"

    def test_just_under_a_day_is_amber(self):
        status = classify_sla(NOW + timedelta(hours=23, minutes=59), NOW)
        assert status.severity == Severity.AMBER
        assert status.label == "23h left"

    def test_exactly_a_day_is_green_in_days(self):
        status = classify_sla(NOW + timedelta(hours=24), NOW)
        assert status.severity == Severity.GREEN
        assert status.label == "1d left"

    def test_several_days_label(self):
        assert classify_sla(NOW + timedelta(hours=80), NOW).label == "3d left"

    def test_custom_thresholds(self):
        """Thresholds come from settings and are honoured."""
        sla_at = NOW + timedelta(hours=3)
        assert compute_severity(sla_at, NOW) == Severity.AMBER
        assert compute_severity(sla_at, NOW, red_hours=4, amber_hours=48) == Severity.RED
        assert compute_severity(sla_at, NOW, red_hours=1, amber_hours=2) == Severity.GREEN


class TestSeverityOverTime:
    """The same item escalates as time passes, with no write involved."""

    def test_item_escalates_green_to_red(self):
        sla_at = NOW + timedelta(hours=30)

        assert compute_severity(sla_at, NOW) == Severity.GREEN
        assert compute_severity(sla_at, NOW + timedelta(hours=10)) == Severity.AMBER
        assert compute_severity(sla_at, NOW + timedelta(hours=29)) == Severity.RED
        assert is_overdue(sla_at, NOW + timedelta(hours=31)) is True
