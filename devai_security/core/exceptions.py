# devai_security/core/exceptions.py
"""
Exceptions for the security utility layer.

Most security components report problems through return values rather
than exceptions; the classes here cover the seams where raising is the
right call (storage backends, construction-time configuration and the
opt-in guard helpers).
"""

from typing import Optional, Dict, Any


class SecurityBaseError(Exception):
    """Base exception for all security layer errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class StorageError(SecurityBaseError):
    """Errors raised by key-value store backends"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize storage error.

        Args:
            message: Error description
            key: Store key that failed
            operation: Store operation that failed (get, set, remove, ...)
            details: Additional backend context
        """
        super().__init__(message, details)
        self.key = key
        self.operation = operation

        if key:
            self.details['key'] = key
        if operation:
            self.details['operation'] = operation


class ConfigurationError(SecurityBaseError):
    """Errors in component configuration and initialization"""

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.component = component

        if component:
            self.details['component'] = component


class RateLimitExceededError(SecurityBaseError):
    """A guarded action was refused by the rate limiter"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        retry_after_ms: int = 0,
        remaining_attempts: int = 0,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize rate limit error.

        Args:
            message: Error description
            key: Rate limit key that tripped
            retry_after_ms: Milliseconds until the key admits requests again
            remaining_attempts: Attempts left in the current window
            details: Additional context
        """
        super().__init__(message, details)
        self.key = key
        self.retry_after_ms = retry_after_ms
        self.remaining_attempts = remaining_attempts

        if key:
            self.details['key'] = key
        self.details['retry_after_ms'] = retry_after_ms


# Convenience functions for creating common errors

def storage_error(message: str, key: str = None, operation: str = None) -> StorageError:
    """Create a storage error with key context."""
    return StorageError(message, key=key, operation=operation)


def config_error(message: str, component: str) -> ConfigurationError:
    """Create a configuration error with component context."""
    return ConfigurationError(message, component=component)
