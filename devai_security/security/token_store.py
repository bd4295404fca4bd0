"""
Anti-forgery token storage.

One current token per store: issuing a new token replaces the old one,
which then no longer validates. Tokens are compared in constant time.

State machine::

    Unset --generate/get_or_create--> Issued(token) --generate--> Issued(new)
"""

import logging
import secrets
from typing import Any, Dict, Mapping, Optional

from devai_security.core.clock import Clock, SystemClock
from devai_security.core.config import settings
from devai_security.models.security_models import Severity
from devai_security.services.base_store import BaseStore

logger = logging.getLogger(__name__)


class TokenStore:
    """
    Issues and validates the current CSRF token.

    Design decisions:
    1. Single slot - no set of valid tokens, the latest one wins
    2. Fail closed - unset, expired or unreadable state never validates
    3. Returns booleans - callers decide whether a mismatch is fatal
    """

    def __init__(
        self,
        store: BaseStore,
        clock: Optional[Clock] = None,
        event_log=None,
        storage_key: Optional[str] = None,
        token_bytes: Optional[int] = None,
        max_age_ms: Optional[int] = None,
        header_name: Optional[str] = None,
    ):
        self.store = store
        self.clock = clock if clock is not None else SystemClock()
        self.event_log = event_log
        self.storage_key = storage_key or settings.TOKEN_STORAGE_KEY
        self.token_bytes = token_bytes or settings.TOKEN_BYTES
        self.max_age_ms = max_age_ms if max_age_ms is not None else settings.TOKEN_MAX_AGE_MS
        self.header_name = header_name or settings.TOKEN_HEADER_NAME

        self._validation_failures = 0

    @property
    def timestamp_key(self) -> str:
        return f"{self.storage_key}_timestamp"

    def _is_expired(self) -> bool:
        if not self.max_age_ms:
            return False

        result = self.store.try_get(self.timestamp_key)
        if not result.ok or not result.value:
            return False

        try:
            issued_at = int(result.value)
        except ValueError:
            logger.warning("Unreadable token timestamp, treating token as expired")
            return True

        return self.clock.now() - issued_at >= self.max_age_ms

    def current(self) -> Optional[str]:
        """The issued token, or None if unset, unreadable or expired"""
        result = self.store.try_get(self.storage_key)
        if not result.ok or not result.value:
            return None

        if self._is_expired():
            logger.info("🔐 Stored token expired")
            return None

        return result.value

    def generate(self) -> str:
        """Issue a fresh token, replacing the current one"""
        token = secrets.token_hex(self.token_bytes)

        if not self.store.try_set(self.storage_key, token).ok:
            logger.error("Issued token could not be persisted; it will not validate")
        self.store.try_set(self.timestamp_key, str(self.clock.now()))

        logger.debug("🔐 Issued new anti-forgery token")
        return token

    def get_or_create(self) -> str:
        token = self.current()
        if token is None:
            token = self.generate()
        return token

    def validate(self, candidate: Any) -> bool:
        """
        Check ``candidate`` against the current token.

        Returns:
            True only if a token is issued and ``candidate`` equals it
        """
        if not isinstance(candidate, str) or not candidate:
            return False

        token = self.current()
        if token is None:
            logger.debug("Token validation without an issued token")
            return False

        if secrets.compare_digest(token.encode("utf-8"), candidate.encode("utf-8")):
            return True

        self._validation_failures += 1
        logger.warning("🔒 Anti-forgery token mismatch")
        if self.event_log is not None:
            self.event_log.log(
                "CSRF_TOKEN_MISMATCH",
                {"candidate_length": len(candidate)},
                Severity.HIGH,
            )
        return False

    def clear(self) -> None:
        self.store.try_remove(self.storage_key)
        self.store.try_remove(self.timestamp_key)

    def attach_to_headers(self, headers: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Copy of ``headers`` carrying the current token"""
        return {**(headers or {}), self.header_name: self.get_or_create()}

    def attach_to_form(self, data: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Copy of ``data`` carrying the current token as a form field"""
        return {**(data or {}), self.storage_key: self.get_or_create()}

    def get_metrics(self) -> Dict[str, int]:
        return {"validation_failures": self._validation_failures}
