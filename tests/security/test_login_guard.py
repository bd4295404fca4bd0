# tests/security/test_login_guard.py
"""
Tests for the login attempt guard and the preset policies.
"""

from contextlib import contextmanager

import pytest

from devai_security.core.exceptions import RateLimitExceededError
from devai_security.security.login_guard import (
    LoginAttemptGuard,
    RateLimitPolicies,
    MINUTE_MS,
)
from devai_security.security.rate_limiter import RateLimiter
from devai_security.services.memory_store import InMemoryKeyValueStore


@pytest.fixture
def guard(rate_limiter):
    return LoginAttemptGuard(rate_limiter)


class TestPolicies:

    def test_login_policy(self):
        policy = RateLimitPolicies.LOGIN

        assert policy.max_requests == 5
        assert policy.time_window_ms == 10 * MINUTE_MS
        assert policy.block_duration_ms == 15 * MINUTE_MS

    def test_other_policies(self):
        assert RateLimitPolicies.REGISTRATION.max_requests == 3
        assert RateLimitPolicies.PASSWORD_RESET.block_duration_ms == 30 * MINUTE_MS
        assert RateLimitPolicies.API_REQUEST.max_requests == 100


class TestLoginAttemptGuard:

    def test_five_attempts_then_blocked(self, guard):
        results = [guard.register_attempt() for _ in range(6)]

        assert [r.allowed for r in results] == [True] * 5 + [False]
        assert results[-1].retry_after_ms == 15 * MINUTE_MS

    def test_remaining_and_warning(self, guard):
        results = [guard.register_attempt() for _ in range(5)]

        assert [r.remaining for r in results] == [4, 3, 2, 1, 0]
        assert [r.should_warn for r in results] == [False, False, True, True, True]

    def test_blocked_for_fifteen_minutes(self, guard, clock):
        for _ in range(6):
            guard.register_attempt()

        clock.advance(15 * MINUTE_MS - 1)
        assert guard.register_attempt().allowed is False
        assert guard.is_blocked is True

        clock.advance(1)
        assert guard.is_blocked is False
        assert guard.register_attempt().allowed is True

    def test_success_resets_immediately(self, guard):
        for _ in range(4):
            guard.register_attempt()

        guard.record_success()

        assert guard.remaining_attempts == 5
        assert guard.register_attempt().remaining == 4

    def test_success_lifts_block(self, guard):
        for _ in range(6):
            guard.register_attempt()

        guard.record_success()

        assert guard.register_attempt().allowed is True

    def test_ensure_allowed_raises_when_blocked(self, guard):
        for _ in range(5):
            guard.ensure_allowed()

        with pytest.raises(RateLimitExceededError) as exc_info:
            guard.ensure_allowed()

        assert exc_info.value.key == "login"
        assert exc_info.value.retry_after_ms == 15 * MINUTE_MS
        assert "retry_after_ms" in str(exc_info.value)

    def test_guards_are_independent(self, rate_limiter):
        login = LoginAttemptGuard(rate_limiter)
        register = LoginAttemptGuard(
            rate_limiter, key="register", policy=RateLimitPolicies.REGISTRATION
        )

        for _ in range(6):
            login.register_attempt()

        assert register.register_attempt().allowed is True
        assert register.remaining_attempts == 2

    def test_remaining_ignores_attempts_made_after_release(self, clock):
        class InterleavingStore(InMemoryKeyValueStore):
            after_release = None

            @contextmanager
            def lock(self, name):
                with super().lock(name) as held:
                    yield held
                callback, self.after_release = self.after_release, None
                if callback is not None:
                    callback()

        store = InterleavingStore()
        limiter = RateLimiter(store, clock)
        guard = LoginAttemptGuard(limiter)
        store.after_release = lambda: limiter.is_rate_limited("login", RateLimitPolicies.LOGIN)

        result = guard.register_attempt()

        assert result.remaining == 4
        assert guard.remaining_attempts == 3
