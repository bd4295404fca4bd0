# tests/services/test_memory_store.py
"""
Unit tests for the in-memory store and the shared BaseStore behaviour.
"""
import threading

import pytest

from devai_security.core.exceptions import StorageError, ConfigurationError
from devai_security.services.base_store import StoreResult
from devai_security.services.memory_store import InMemoryKeyValueStore


class TestInMemoryKeyValueStore:
    """Raw access"""

    def test_starts_uninitialized(self):
        store = InMemoryKeyValueStore()

        assert not store.is_initialized
        store.initialize()
        assert store.is_initialized

    def test_initialize_is_idempotent(self):
        store = InMemoryKeyValueStore({"a": "1"})
        store.initialize()
        store.initialize()

        assert store.get("a") == "1"

    def test_get_missing_returns_none(self, store):
        assert store.get("missing") is None

    def test_set_then_get(self, store):
        store.set("key", "value")
        assert store.get("key") == "value"

    def test_set_replaces(self, store):
        store.set("key", "old")
        store.set("key", "new")
        assert store.get("key") == "new"

    def test_remove_missing_is_not_an_error(self, store):
        store.remove("missing")
        assert store.get("missing") is None

    def test_remove(self, store):
        store.set("key", "value")
        store.remove("key")
        assert "key" not in store.keys()

    def test_clear_and_len(self, store):
        store.set("a", "1")
        store.set("b", "2")
        assert len(store) == 2

        store.clear()
        assert len(store) == 0

    def test_initial_contents_are_copied(self):
        initial = {"a": "1"}
        store = InMemoryKeyValueStore(initial)
        store.set("b", "2")

        assert initial == {"a": "1"}

    def test_health_check(self, store):
        store.set("a", "1")
        health = store.health_check()

        assert health["healthy"] is True
        assert health["status"] == "in_memory"
        assert health["details"]["keys"] == 1


class TestResultWrappers:
    """try_* never raise"""

    def test_try_get_initializes_lazily(self):
        store = InMemoryKeyValueStore({"a": "1"})

        result = store.try_get("a")

        assert store.is_initialized
        assert result == StoreResult(ok=True, value="1")

    def test_try_set_and_remove(self, store):
        assert store.try_set("a", "1").ok
        assert store.get("a") == "1"

        assert store.try_remove("a").ok
        assert store.get("a") is None

    def test_failures_are_wrapped(self, failing_store):
        get_result = failing_store.try_get("a")
        set_result = failing_store.try_set("a", "1")
        remove_result = failing_store.try_remove("a")

        for result in (get_result, set_result, remove_result):
            assert not result.ok
            assert isinstance(result.error, OSError)

        assert get_result.value is None

    def test_failures_are_logged(self, failing_store, caplog):
        with caplog.at_level("WARNING"):
            failing_store.try_set("csrf-token", "x")

        assert "set failed for key 'csrf-token'" in caplog.text


class TestInitialization:
    """Errors raised while creating the backend"""

    def test_unexpected_error_becomes_storage_error(self):
        class BrokenStore(InMemoryKeyValueStore):
            def _initialize_client(self):
                raise RuntimeError("disk missing")

        store = BrokenStore()

        with pytest.raises(StorageError) as exc_info:
            store.initialize()

        assert exc_info.value.operation == "initialize"
        assert exc_info.value.details["error_type"] == "RuntimeError"
        assert not store.is_initialized

    def test_configuration_error_propagates(self):
        class MisconfiguredStore(InMemoryKeyValueStore):
            def _validate_config(self):
                raise ConfigurationError("bad config", component="store")

        with pytest.raises(ConfigurationError):
            MisconfiguredStore().initialize()

    def test_try_get_absorbs_initialization_failure(self):
        class BrokenStore(InMemoryKeyValueStore):
            def _initialize_client(self):
                raise RuntimeError("disk missing")

        result = BrokenStore().try_get("a")

        assert not result.ok
        assert isinstance(result.error, StorageError)


class TestLocking:
    """Per-key in-process locks"""

    def test_lock_yields_true(self, store):
        with store.lock("rateLimit_login") as held:
            assert held is True

    def test_lock_is_reused_per_name(self, store):
        with store.lock("a"):
            pass
        with store.lock("a"):
            pass
        with store.lock("b"):
            pass

        assert store.get_metrics()["locked_keys"] == 2

    def test_lock_serializes_read_modify_write(self, store):
        store.set("counter", "0")

        def bump():
            for _ in range(200):
                with store.lock("counter"):
                    store.set("counter", str(int(store.get("counter")) + 1))

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get("counter") == "800"


class TestShutdown:

    def test_shutdown_resets_state(self, store):
        store.shutdown()

        assert not store.is_initialized
        assert store.get_metrics()["initialized"] is False

    def test_shutdown_before_initialize_is_noop(self):
        store = InMemoryKeyValueStore()
        store.shutdown()

        assert not store.is_initialized
