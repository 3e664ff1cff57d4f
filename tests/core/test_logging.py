"""Tests for the structlog processors and log level resolution."""

import pytest
from asgi_correlation_id.context import correlation_id

from action_center.core.config import Settings
from action_center.core.logging import add_correlation_id, add_service_name, resolve_log_level

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "overrides,expected",
    [
        ({}, "INFO"),
        ({"debug": True}, "DEBUG"),
        ({"debug": True, "log_level": "warning"}, "WARNING"),
    ],
)
def test_resolve_log_level(overrides, expected):
    assert resolve_log_level(Settings(_env_file=None, **overrides)) == expected


def test_service_name_added_without_overwriting():
    assert add_service_name(None, "info", {"event": "x"})["service"] == "action-center"
    assert add_service_name(None, "info", {"event": "x", "service": "other"})["service"] == "other"


def test_correlation_id_attached_inside_request_context():
    assert "correlation_id" not in add_correlation_id(None, "info", {"event": "x"})

    token = correlation_id.set("req-42")
    try:
        assert add_correlation_id(None, "info", {"event": "x"})["correlation_id"] == "req-42"
    finally:
        correlation_id.reset(token)
