"""
Fixed-window rate limiting with blocking.

Each key owns one RateLimitRecord in the store under
``<RATE_LIMIT_KEY_PREFIX><key>``. The window is anchored at the first
attempt and restarts once it has fully elapsed, so up to twice
``max_requests`` can pass around a window boundary. Exceeding the limit
blocks the key for ``block_duration_ms``; the block is lifted lazily by
the next call after it ends. No timers are involved.
"""

import logging
from typing import Optional, Tuple

from pydantic import ValidationError

from devai_security.core.clock import Clock, SystemClock
from devai_security.core.config import settings
from devai_security.models.security_models import (
    RateLimitConfig,
    RateLimitRecord,
    RateLimitStatus,
    Severity,
)
from devai_security.services.base_store import BaseStore

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Per-key admission control persisted in a key-value store.

    Keys are independent namespaces chosen by the caller (``login``,
    ``register``, ...). Every read-modify-write of a record runs under
    ``store.lock`` so concurrent callers cannot double-admit; an attempt
    that cannot obtain the lock is refused.
    """

    def __init__(
        self,
        store: BaseStore,
        clock: Optional[Clock] = None,
        event_log=None,
        key_prefix: Optional[str] = None,
    ):
        self.store = store
        self.clock = clock if clock is not None else SystemClock()
        self.event_log = event_log
        self.key_prefix = key_prefix if key_prefix is not None else settings.RATE_LIMIT_KEY_PREFIX

    def _storage_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    @staticmethod
    def _resolve_config(
        config: Optional[RateLimitConfig],
        max_requests: Optional[int],
        time_window_ms: Optional[int],
        block_duration_ms: Optional[int],
    ) -> RateLimitConfig:
        if config is not None:
            return config
        if max_requests is None:
            raise TypeError("either config or max_requests is required")
        return RateLimitConfig(
            max_requests=max_requests,
            time_window_ms=time_window_ms or settings.RATE_LIMIT_WINDOW_MS,
            block_duration_ms=block_duration_ms,
        )

    def _load(self, storage_key: str) -> RateLimitRecord:
        result = self.store.try_get(storage_key)
        if not result.ok or not result.value:
            return RateLimitRecord()

        try:
            return RateLimitRecord.model_validate_json(result.value)
        except ValidationError:
            logger.warning(f"Corrupt rate limit record '{storage_key}', starting fresh")
            return RateLimitRecord()

    def _save(self, storage_key: str, record: RateLimitRecord) -> None:
        result = self.store.try_set(storage_key, record.model_dump_json(by_alias=True))
        if not result.ok:
            logger.warning(f"Rate limit state for '{storage_key}' not persisted")

    @staticmethod
    def _admit(record: RateLimitRecord, config: RateLimitConfig, now: int) -> Tuple[bool, bool]:
        """
        Apply one attempt to ``record`` in place.

        Returns:
            (refused, block_started)
        """
        if record.is_blocked:
            if now < record.blocked_until:
                return True, False
            # Block elapsed
            record.is_blocked = False
            record.blocked_until = 0
            record.attempts = 0
            record.window_start = now

        if record.attempts == 0 or now - record.window_start >= config.time_window_ms:
            record.window_start = now
            record.attempts = 1
            return False, False

        record.attempts += 1
        if record.attempts > config.max_requests:
            record.is_blocked = True
            record.blocked_until = now + config.effective_block_ms
            return True, True

        return False, False

    def register(
        self,
        key: str,
        config: Optional[RateLimitConfig] = None,
        *,
        max_requests: Optional[int] = None,
        time_window_ms: Optional[int] = None,
        block_duration_ms: Optional[int] = None,
    ) -> RateLimitStatus:
        """
        Register an attempt for ``key`` and report the resulting state.

        The status is computed from the same record the attempt was applied
        to, under the same lock. If the lock cannot be obtained the attempt
        is refused and nothing is recorded.

        Returns:
            RateLimitStatus whose ``allowed`` says whether this attempt passes
        """
        config = self._resolve_config(config, max_requests, time_window_ms, block_duration_ms)
        storage_key = self._storage_key(key)

        with self.store.lock(storage_key) as held:
            if not held:
                logger.warning(f"🚦 Refusing '{key}': rate limit state is locked by another writer")
                return RateLimitStatus(allowed=False, remaining=0)

            now = self.clock.now()
            record = self._load(storage_key)
            refused, block_started = self._admit(record, config, now)
            self._save(storage_key, record)

        if block_started:
            logger.warning(
                f"🚦 Rate limit exceeded for '{key}' "
                f"({record.attempts} attempts), blocked until {record.blocked_until}"
            )
            if self.event_log is not None:
                self.event_log.log(
                    "RATE_LIMIT_EXCEEDED",
                    {
                        "key": key,
                        "attempts": record.attempts,
                        "blocked_until": record.blocked_until,
                    },
                    Severity.MEDIUM,
                )

        if refused:
            return RateLimitStatus(
                allowed=False,
                remaining=0,
                retry_after_ms=max(0, record.blocked_until - now),
                blocked_until=record.blocked_until,
            )

        return RateLimitStatus(
            allowed=True,
            remaining=max(0, config.max_requests - record.attempts),
        )

    def is_rate_limited(
        self,
        key: str,
        config: Optional[RateLimitConfig] = None,
        *,
        max_requests: Optional[int] = None,
        time_window_ms: Optional[int] = None,
        block_duration_ms: Optional[int] = None,
    ) -> bool:
        """
        Register an attempt for ``key`` and decide whether to refuse it.

        Pass either a RateLimitConfig or the individual limits. Store
        failures and unreadable records count as a fresh window.

        Returns:
            True if the attempt must be refused
        """
        status = self.register(
            key,
            config,
            max_requests=max_requests,
            time_window_ms=time_window_ms,
            block_duration_ms=block_duration_ms,
        )
        return not status.allowed

    def check(
        self,
        key: str,
        config: Optional[RateLimitConfig] = None,
        *,
        max_requests: Optional[int] = None,
        time_window_ms: Optional[int] = None,
        block_duration_ms: Optional[int] = None,
    ) -> RateLimitStatus:
        """Inspect ``key`` without recording an attempt"""
        config = self._resolve_config(config, max_requests, time_window_ms, block_duration_ms)
        now = self.clock.now()
        record = self._load(self._storage_key(key))

        if record.is_blocked and now < record.blocked_until:
            return RateLimitStatus(
                allowed=False,
                remaining=0,
                retry_after_ms=record.blocked_until - now,
                blocked_until=record.blocked_until,
            )

        window_open = (
            not record.is_blocked
            and record.attempts > 0
            and now - record.window_start < config.time_window_ms
        )
        if not window_open:
            return RateLimitStatus(allowed=True, remaining=config.max_requests)

        remaining = max(0, config.max_requests - record.attempts)
        return RateLimitStatus(
            allowed=remaining > 0,
            remaining=remaining,
            retry_after_ms=0 if remaining else record.window_start + config.time_window_ms - now,
        )

    def remaining_attempts(self, key: str, config: RateLimitConfig) -> int:
        return self.check(key, config).remaining

    def reset(self, key: str) -> None:
        """Forget all state for ``key``"""
        storage_key = self._storage_key(key)
        with self.store.lock(storage_key):
            self.store.try_remove(storage_key)
        logger.debug(f"Rate limit for '{key}' reset")
