"""Shared test fixtures for all test groups."""

from datetime import datetime

import pytest

from action_center.core.actor import Actor
from action_center.domain.queues import AdminRole
from action_center.store.memory import InMemoryActionStore
from factories import NOW, StubRedeliverer, seed_items


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def admin() -> Actor:
    """Super admin: access to every queue."""
    return Actor(id="admin-1", name="Ada Admin", role=AdminRole.SUPER_ADMIN)


@pytest.fixture
def other_admin() -> Actor:
    return Actor(id="admin-2", name="Bola Admin", role=AdminRole.SUPER_ADMIN)


@pytest.fixture
def content_admin() -> Actor:
    """Only allowed to work content_flags."""
    return Actor(id="admin-content", name="Chi Content", role=AdminRole.CONTENT_ADMIN)


@pytest.fixture
def redeliverer() -> StubRedeliverer:
    return StubRedeliverer()


@pytest.fixture
def store() -> InMemoryActionStore:
    """Fresh in-memory store seeded with seed_items()."""
    return InMemoryActionStore(seed=seed_items())
