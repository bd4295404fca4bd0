from .security_models import (
    Severity,
    RateLimitRecord,
    RateLimitConfig,
    RateLimitStatus,
    SecurityEvent,
)

__all__ = [
    'Severity',
    'RateLimitRecord',
    'RateLimitConfig',
    'RateLimitStatus',
    'SecurityEvent',
]
