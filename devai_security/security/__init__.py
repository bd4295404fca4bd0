"""
Security components and their wiring.

The components share one store, one clock and one event log. Build them
together through SecurityToolkit.create() instead of keeping module-level
instances around.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from devai_security.core.clock import Clock, SystemClock
from devai_security.core.config import SecuritySettings, settings as default_settings
from devai_security.services import BaseStore, create_store

from .sanitizer import sanitize, detect_threats, validate_form_security
from .validator import (
    ValidationResult,
    InputRules,
    is_valid_email,
    is_strong_password,
    password_issues,
    is_safe_url,
    validate_input,
    validate_email,
    validate_password,
)
from .token_store import TokenStore
from .rate_limiter import RateLimiter
from .login_guard import LoginAttemptGuard, RateLimitPolicies, AttemptResult
from .event_log import SecurityEventLog

logger = logging.getLogger(__name__)


@dataclass
class SecurityToolkit:
    """One process-wide set of security components"""
    store: BaseStore
    clock: Clock
    events: SecurityEventLog
    tokens: TokenStore
    rate_limiter: RateLimiter
    login_guard: LoginAttemptGuard

    @classmethod
    def create(
        cls,
        store: Optional[BaseStore] = None,
        clock: Optional[Clock] = None,
        settings: Optional[SecuritySettings] = None,
    ) -> "SecurityToolkit":
        if settings is None:
            settings = default_settings
        if store is None:
            store = create_store(settings)
        if clock is None:
            clock = SystemClock()

        events = SecurityEventLog(
            store,
            clock,
            max_entries=settings.EVENT_LOG_MAX_ENTRIES,
            storage_key=settings.EVENT_LOG_STORAGE_KEY,
        )
        tokens = TokenStore(
            store,
            clock,
            event_log=events,
            storage_key=settings.TOKEN_STORAGE_KEY,
            token_bytes=settings.TOKEN_BYTES,
            max_age_ms=settings.TOKEN_MAX_AGE_MS,
            header_name=settings.TOKEN_HEADER_NAME,
        )
        rate_limiter = RateLimiter(
            store,
            clock,
            event_log=events,
            key_prefix=settings.RATE_LIMIT_KEY_PREFIX,
        )

        logger.info(f"{settings.APP_NAME} security toolkit ready ({store.store_name})")

        return cls(
            store=store,
            clock=clock,
            events=events,
            tokens=tokens,
            rate_limiter=rate_limiter,
            login_guard=LoginAttemptGuard(rate_limiter),
        )


__all__ = [
    'SecurityToolkit',
    'sanitize',
    'detect_threats',
    'validate_form_security',
    'ValidationResult',
    'InputRules',
    'is_valid_email',
    'is_strong_password',
    'password_issues',
    'is_safe_url',
    'validate_input',
    'validate_email',
    'validate_password',
    'TokenStore',
    'RateLimiter',
    'LoginAttemptGuard',
    'RateLimitPolicies',
    'AttemptResult',
    'SecurityEventLog',
]
