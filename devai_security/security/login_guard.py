"""
Preset rate-limit policies and the login attempt guard.
"""

import logging
from dataclasses import dataclass

from devai_security.core.config import settings
from devai_security.core.exceptions import RateLimitExceededError
from devai_security.models.security_models import RateLimitConfig, RateLimitStatus
from devai_security.security.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

MINUTE_MS = 60_000


class RateLimitPolicies:
    """Limits for the platform's privileged actions"""
    LOGIN = RateLimitConfig(
        max_requests=5,
        time_window_ms=10 * MINUTE_MS,
        block_duration_ms=settings.RATE_LIMIT_BLOCK_MS,
    )
    REGISTRATION = RateLimitConfig(
        max_requests=3,
        time_window_ms=5 * MINUTE_MS,
        block_duration_ms=10 * MINUTE_MS,
    )
    PASSWORD_RESET = RateLimitConfig(
        max_requests=3,
        time_window_ms=15 * MINUTE_MS,
        block_duration_ms=30 * MINUTE_MS,
    )
    API_REQUEST = RateLimitConfig(
        max_requests=100,
        time_window_ms=MINUTE_MS,
        block_duration_ms=MINUTE_MS,
    )


@dataclass
class AttemptResult:
    """Outcome of a guarded attempt"""
    allowed: bool
    remaining: int
    should_warn: bool = False
    retry_after_ms: int = 0


class LoginAttemptGuard:
    """
    Wraps a RateLimiter with a fixed policy for one action.

    ``should_warn`` turns on once ``warn_threshold`` or fewer attempts are
    left, so the form can tell the user before the block hits. A
    successful login clears the key immediately.
    """

    def __init__(
        self,
        limiter: RateLimiter,
        key: str = "login",
        policy: RateLimitConfig = RateLimitPolicies.LOGIN,
        warn_threshold: int = 2,
    ):
        self.limiter = limiter
        self.key = key
        self.policy = policy
        self.warn_threshold = warn_threshold

    def register_attempt(self) -> AttemptResult:
        status = self.limiter.register(self.key, self.policy)

        if not status.allowed:
            return AttemptResult(
                allowed=False,
                remaining=0,
                retry_after_ms=status.retry_after_ms,
            )

        return AttemptResult(
            allowed=True,
            remaining=status.remaining,
            should_warn=status.remaining <= self.warn_threshold,
        )

    def ensure_allowed(self) -> AttemptResult:
        """
        Register an attempt and raise if it is refused.

        Raises:
            RateLimitExceededError: With the time until the block ends
        """
        result = self.register_attempt()
        if not result.allowed:
            raise RateLimitExceededError(
                f"Too many attempts for '{self.key}'",
                key=self.key,
                retry_after_ms=result.retry_after_ms,
                remaining_attempts=result.remaining,
            )
        return result

    def record_success(self) -> None:
        self.limiter.reset(self.key)
        logger.info(f"Successful '{self.key}', attempt counter cleared")

    def status(self) -> RateLimitStatus:
        return self.limiter.check(self.key, self.policy)

    @property
    def remaining_attempts(self) -> int:
        return self.status().remaining

    @property
    def is_blocked(self) -> bool:
        return self.status().blocked_until is not None
