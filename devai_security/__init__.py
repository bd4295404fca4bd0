"""
Client-side security utilities for the DevAI platform.

Sanitization, validation, anti-forgery tokens, rate limiting and a
bounded security event journal, all persisting through an injected
key-value store.
"""

from devai_security.security import (
    SecurityToolkit,
    sanitize,
    is_valid_email,
    is_strong_password,
    TokenStore,
    RateLimiter,
    LoginAttemptGuard,
    SecurityEventLog,
)

__version__ = "1.0.0"

__all__ = [
    'SecurityToolkit',
    'sanitize',
    'is_valid_email',
    'is_strong_password',
    'TokenStore',
    'RateLimiter',
    'LoginAttemptGuard',
    'SecurityEventLog',
]
