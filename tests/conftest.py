"""
Companion memory test fixtures
Shared stores, a controllable clock and a mocked generation client
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from companion_memory.config import EngineConfig, MemoryLimitsConfig, SessionConfig
from companion_memory.memory_store import MemoryStore
from companion_memory.profile_store import ProfileStore
from companion_memory.session_store import SessionStore
from companion_memory.storage import InMemoryDocumentStore


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def limits():
    return MemoryLimitsConfig()


@pytest.fixture
def profiles(store, limits, clock):
    return ProfileStore(store, limits, clock)


@pytest.fixture
def memories(store, profiles, limits, clock):
    return MemoryStore(store, profiles, limits, clock)


@pytest.fixture
def sessions(store, clock):
    return SessionStore(store, SessionConfig(), clock)


@pytest.fixture
def engine_config():
    """Engine config with compaction forced off unless a test enables it."""
    return EngineConfig(storage={"backend": "memory"}, compaction={"probability": 0.0})


@pytest.fixture
def mock_generator():
    """Generation client returning a canned reply."""
    mock = AsyncMock()
    mock.generate.return_value = "This is a mock reply."
    return mock
