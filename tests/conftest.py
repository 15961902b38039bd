import os

# Keep test runs from writing log files; must happen before any client module is imported
os.environ.setdefault("ENABLE_FILE_LOGGING", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from events import EventBus
from storage import InMemoryKeyValueStore
from tests.fakes import FakeClock


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def clock():
    return FakeClock()
