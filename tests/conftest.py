# tests/conftest.py
"""
Shared fixtures for the security layer tests.

Every component gets the same in-memory store and a manual clock so
window and block expiry can be driven step by step.
"""

import pytest

from devai_security.core.clock import ManualClock
from devai_security.services.memory_store import InMemoryKeyValueStore
from devai_security.security.event_log import SecurityEventLog
from devai_security.security.token_store import TokenStore
from devai_security.security.rate_limiter import RateLimiter


START_MS = 1_700_000_000_000


@pytest.fixture
def clock():
    return ManualClock(START_MS)


@pytest.fixture
def store():
    store = InMemoryKeyValueStore()
    store.initialize()
    return store


@pytest.fixture
def event_log(store, clock):
    return SecurityEventLog(store, clock)


@pytest.fixture
def token_store(store, clock, event_log):
    return TokenStore(store, clock, event_log=event_log)


@pytest.fixture
def rate_limiter(store, clock, event_log):
    return RateLimiter(store, clock, event_log=event_log)


class FailingStore(InMemoryKeyValueStore):
    """Store whose every operation fails, like a full or unavailable backend"""

    def get(self, key):
        raise OSError("storage unavailable")

    def set(self, key, value):
        raise OSError("quota exceeded")

    def remove(self, key):
        raise OSError("storage unavailable")


@pytest.fixture
def failing_store():
    return FailingStore()
