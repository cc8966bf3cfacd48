import os
from dataclasses import replace
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

# Memory backend and no background loop: tests drive scans explicitly
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")
os.environ.setdefault("REMINDER_SCHEDULER_ENABLED", "false")

from agenda_api.main import create_app  # noqa: E402
from agenda_api.persistence import AgendaPersistence, InMemoryKeyValueStore  # noqa: E402
from agenda_api.scheduler import ReminderScheduler  # noqa: E402
from agenda_api.settings import get_settings  # noqa: E402
from agenda_api.store import AgendaStore  # noqa: E402

# Monday
TODAY_9AM = datetime(2025, 3, 10, 9, 0)


class FakeClock:
    """Settable clock injected wherever the app asks for the current time."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(TODAY_9AM)


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def persistence(kv):
    return AgendaPersistence(kv)


@pytest.fixture
def store(persistence, clock):
    return AgendaStore(persistence, clock=clock)


@pytest.fixture
def scheduler(store, clock):
    return ReminderScheduler(store, clock=clock)


@pytest.fixture
def settings():
    return replace(
        get_settings(),
        persistence_backend="memory",
        reminder_scheduler_enabled=False,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings, clock):
    return create_app(settings, clock)


@pytest.fixture
def client(app):
    return TestClient(app)
