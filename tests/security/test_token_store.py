# tests/security/test_token_store.py
"""
Tests for anti-forgery token issuing and validation.
"""

import pytest

from devai_security.security.token_store import TokenStore


class TestTokenStore:
    """Token lifecycle: Unset -> Issued(token) -> Issued(new token)"""

    def test_generate_returns_long_random_token(self, token_store):
        token = token_store.generate()

        assert isinstance(token, str)
        assert len(token) > 10
        assert len(token) == 64  # 32 bytes, hex encoded

    def test_generate_is_unpredictable(self, token_store):
        tokens = {token_store.generate() for _ in range(20)}

        assert len(tokens) == 20

    def test_validate_generated_token(self, token_store):
        assert token_store.validate(token_store.generate()) is True

    def test_forged_token_rejected(self, token_store):
        token_store.generate()

        assert token_store.validate("forged") is False

    def test_validate_before_issue(self, token_store):
        assert token_store.validate("anything") is False
        assert token_store.current() is None

    @pytest.mark.parametrize("candidate", [None, "", 123, b"bytes"])
    def test_validate_non_string_candidates(self, token_store, candidate):
        token_store.generate()

        assert token_store.validate(candidate) is False

    def test_regenerate_invalidates_previous(self, token_store):
        first = token_store.generate()
        second = token_store.generate()

        assert first != second
        assert token_store.validate(first) is False
        assert token_store.validate(second) is True

    def test_get_or_create_is_stable(self, token_store):
        first = token_store.get_or_create()
        second = token_store.get_or_create()

        assert first == second
        assert token_store.validate(first) is True

    def test_get_or_create_returns_existing_token(self, token_store):
        token = token_store.generate()

        assert token_store.get_or_create() == token

    def test_token_persisted_under_well_known_key(self, token_store, store):
        token = token_store.generate()

        assert store.get("csrf-token") == token

    def test_state_shared_through_store(self, store, clock):
        issuer = TokenStore(store, clock)
        checker = TokenStore(store, clock)

        assert checker.validate(issuer.generate()) is True

    def test_external_clear_resets_to_unset(self, token_store, store):
        token = token_store.generate()
        store.clear()

        assert token_store.validate(token) is False
        assert token_store.get_or_create() != token

    def test_clear(self, token_store, store):
        token_store.generate()
        token_store.clear()

        assert token_store.current() is None
        assert store.get("csrf-token_timestamp") is None

    def test_mismatch_reported_to_event_log(self, token_store, event_log):
        token_store.generate()
        token_store.validate("forged")

        events = event_log.events_of_type("CSRF_TOKEN_MISMATCH")
        assert len(events) == 1
        assert events[0].severity == "high"
        assert token_store.get_metrics()["validation_failures"] == 1

    def test_unset_validation_not_reported(self, token_store, event_log):
        token_store.validate("forged")

        assert len(event_log) == 0


class TestTokenExpiry:
    """Optional maximum token age"""

    @pytest.fixture
    def expiring_store(self, store, clock):
        return TokenStore(store, clock, max_age_ms=1000)

    def test_token_valid_within_max_age(self, expiring_store, clock):
        token = expiring_store.generate()
        clock.advance(999)

        assert expiring_store.validate(token) is True

    def test_token_expires(self, expiring_store, clock):
        token = expiring_store.generate()
        clock.advance(1000)

        assert expiring_store.validate(token) is False

    def test_get_or_create_replaces_expired_token(self, expiring_store, clock):
        token = expiring_store.generate()
        clock.advance(5000)

        fresh = expiring_store.get_or_create()
        assert fresh != token
        assert expiring_store.validate(fresh) is True

    def test_corrupt_timestamp_counts_as_expired(self, expiring_store, store):
        token = expiring_store.generate()
        store.set("csrf-token_timestamp", "not-a-number")

        assert expiring_store.validate(token) is False


class TestTokenAttachment:

    def test_attach_to_headers(self, token_store):
        headers = token_store.attach_to_headers({"Content-Type": "application/json"})

        assert headers["Content-Type"] == "application/json"
        assert token_store.validate(headers["X-CSRF-Token"]) is True

    def test_attach_does_not_mutate_input(self, token_store):
        original = {"a": "b"}
        token_store.attach_to_headers(original)

        assert original == {"a": "b"}

    def test_attach_to_form(self, token_store):
        data = token_store.attach_to_form({"title": "Lesson 1"})

        assert data["title"] == "Lesson 1"
        assert data["csrf-token"] == token_store.current()


class TestTokenStoreFailures:
    """Storage failures never raise and never validate"""

    def test_generate_with_failing_store(self, failing_store, clock):
        tokens = TokenStore(failing_store, clock)

        token = tokens.generate()

        assert len(token) == 64
        assert tokens.validate(token) is False

    def test_get_or_create_with_failing_store(self, failing_store, clock):
        tokens = TokenStore(failing_store, clock)

        assert isinstance(tokens.get_or_create(), str)
