"""Shared fixtures."""

import pytest
from datetime import date, timedelta

from seedling.storage import GardenStore


class FakeClock:
    """Callable clock returning a settable calendar date."""

    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int = 1) -> None:
        self.today += timedelta(days=days)


@pytest.fixture
def clock():
    """A clock starting on 2026-03-01."""
    return FakeClock(date(2026, 3, 1))


@pytest.fixture
def store():
    """Create an in-memory GardenStore."""
    store = GardenStore(":memory:")
    store.connect()
    yield store
    store.close()
