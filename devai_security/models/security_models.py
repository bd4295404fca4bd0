# devai_security/models/security_models.py
"""
Records persisted or returned by the security components.

Persisted records keep the camelCase field names the browser client
wrote to local storage, so existing journals and rate-limit entries can
be read back unchanged.
"""

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RateLimitRecord(BaseModel):
    """
    Admission state for one rate-limit key.

    ``attempts`` only counts inside ``[window_start, window_start + window)``;
    ``blocked_until`` is only meaningful while ``is_blocked`` is set.
    """
    model_config = ConfigDict(populate_by_name=True)

    attempts: int = Field(default=0, ge=0)
    window_start: int = Field(default=0, alias="windowStart")
    is_blocked: bool = Field(default=False, alias="isBlocked")
    blocked_until: int = Field(default=0, alias="blockedUntil")


class RateLimitConfig(BaseModel):
    """
    Admission policy for a rate-limit key.

    ``block_duration_ms`` of ``None`` blocks for one time window.
    """
    model_config = ConfigDict(frozen=True)

    max_requests: int = Field(ge=1)
    time_window_ms: int = Field(default=60_000, gt=0)
    block_duration_ms: Optional[int] = Field(default=None, gt=0)

    @property
    def effective_block_ms(self) -> int:
        if self.block_duration_ms is None:
            return self.time_window_ms
        return self.block_duration_ms


class RateLimitStatus(BaseModel):
    """Read-only snapshot of a key's admission state"""
    allowed: bool
    remaining: int
    retry_after_ms: int = 0
    blocked_until: Optional[int] = None


class SecurityEvent(BaseModel):
    """One journal entry"""
    model_config = ConfigDict(use_enum_values=True)

    type: str
    timestamp: int
    severity: Severity = Severity.MEDIUM
    details: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_type(self) -> "SecurityEvent":
        if not self.type:
            raise ValueError("event type must not be empty")
        return self
