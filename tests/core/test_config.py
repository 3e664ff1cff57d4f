"""Tests for Settings validation."""

import pytest
from pydantic import ValidationError

from action_center.core.config import Settings

pytestmark = pytest.mark.unit


def test_defaults_are_consistent():
    settings = Settings(_env_file=None)
    assert settings.webhook_retry_timeout_seconds < settings.item_lock_ttl_seconds


@pytest.mark.parametrize("timeout,ttl", [(30.0, 30), (45.0, 30)])
def test_redelivery_timeout_must_fit_inside_lock_ttl(timeout, ttl):
    with pytest.raises(ValidationError, match="item_lock_ttl_seconds"):
        Settings(_env_file=None, webhook_retry_timeout_seconds=timeout, item_lock_ttl_seconds=ttl)


def test_short_lock_accepted_with_shorter_timeout():
    settings = Settings(_env_file=None, webhook_retry_timeout_seconds=2.0, item_lock_ttl_seconds=5)
    assert settings.item_lock_ttl_seconds == 5
