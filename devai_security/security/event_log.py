"""
Bounded journal of security-relevant events.

Logging here is fire-and-forget: ``log`` never raises into the caller.
Persistence goes through the store's StoreResult wrappers and a failed
write only shows up on the module logger.
"""

import logging
from collections import deque
from typing import Any, Deque, Dict, List, Mapping, Optional, Union

from pydantic import TypeAdapter, ValidationError

from devai_security.core.clock import Clock, SystemClock
from devai_security.core.config import settings
from devai_security.models.security_models import SecurityEvent, Severity
from devai_security.services.base_store import BaseStore, StoreResult

logger = logging.getLogger(__name__)

_SEVERITY_LEVELS = {
    Severity.LOW.value: logging.INFO,
    Severity.MEDIUM.value: logging.WARNING,
    Severity.HIGH.value: logging.ERROR,
    Severity.CRITICAL.value: logging.CRITICAL,
}

_EVENT_LIST = TypeAdapter(List[SecurityEvent])

_SCALARS = (str, int, float, bool, type(None))


def _scalar(value: Any) -> Any:
    return value if isinstance(value, _SCALARS) else str(value)


class SecurityEventLog:
    """
    Append-only ring buffer of SecurityEvents.

    Holds at most ``max_entries`` events; the oldest is evicted first. The
    journal is loaded on construction and re-read before every append, so
    the store holds the union of what every instance sharing it logged.
    """

    def __init__(
        self,
        store: BaseStore,
        clock: Optional[Clock] = None,
        max_entries: Optional[int] = None,
        storage_key: Optional[str] = None,
    ):
        self.store = store
        self.clock = clock if clock is not None else SystemClock()
        self.max_entries = max_entries or settings.EVENT_LOG_MAX_ENTRIES
        self.storage_key = storage_key or settings.EVENT_LOG_STORAGE_KEY
        self._events: Deque[SecurityEvent] = deque(maxlen=self.max_entries)
        self._load()

    def _read_stored(self) -> Optional[List[SecurityEvent]]:
        """Stored journal, or None if the store could not be read"""
        result = self.store.try_get(self.storage_key)
        if not result.ok:
            return None
        if not result.value:
            return []

        try:
            events = _EVENT_LIST.validate_json(result.value)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable security journal: {e.error_count()} errors")
            return []

        return events[-self.max_entries:]

    def _load(self) -> None:
        events = self._read_stored()
        if events is None:
            return

        # Other writers sharing the store may have appended since last read
        self._events.clear()
        self._events.extend(events)
        logger.debug(f"Loaded {len(self._events)} security events")

    def _persist(self) -> StoreResult:
        try:
            payload = _EVENT_LIST.dump_json(list(self._events)).decode("utf-8")
        except Exception as e:
            return StoreResult(ok=False, error=e)
        return self.store.try_set(self.storage_key, payload)

    def log(
        self,
        event_type: str,
        details: Optional[Mapping[str, Any]] = None,
        severity: Union[Severity, str] = Severity.MEDIUM,
    ) -> Optional[SecurityEvent]:
        """
        Record an event.

        The stored journal is re-read under the store lock before appending,
        so several instances sharing one store keep each other's entries.

        Args:
            event_type: Event name, e.g. ``RATE_LIMIT_EXCEEDED``
            details: Scalar context values
            severity: low, medium, high or critical

        Returns:
            The recorded event, or None if it could not be built
        """
        try:
            event = SecurityEvent(
                type=event_type,
                timestamp=self.clock.now(),
                severity=Severity(severity),
                details={str(k): _scalar(v) for k, v in (details or {}).items()},
            )
        except Exception as e:
            logger.warning(f"Dropped malformed security event '{event_type}': {e}")
            return None

        level = _SEVERITY_LEVELS[event.severity]
        if settings.DEBUG:
            level = max(level, logging.WARNING)
        logger.log(
            level,
            f"Security event [{event.severity.upper()}] {event.type}: {event.details}"
        )

        appended = False
        try:
            with self.store.lock(self.storage_key):
                self._load()
                self._events.append(event)
                appended = True
                result = self._persist()
        except Exception as e:
            if not appended:
                self._events.append(event)
            result = StoreResult(ok=False, error=e)

        if not result.ok:
            logger.debug(f"Security journal not persisted: {result.error}")

        return event

    def recent(self, limit: int = 50) -> List[SecurityEvent]:
        """Most recent ``limit`` events, oldest first"""
        if limit <= 0:
            return []
        return list(self._events)[-limit:]

    def events_of_type(self, event_type: str) -> List[SecurityEvent]:
        return [e for e in self._events if e.type == event_type]

    def count_by_severity(self) -> Dict[str, int]:
        counts = {s.value: 0 for s in Severity}
        for event in self._events:
            counts[event.severity] += 1
        return counts

    def clear(self) -> None:
        self._events.clear()
        try:
            with self.store.lock(self.storage_key):
                result = self.store.try_remove(self.storage_key)
        except Exception as e:
            result = StoreResult(ok=False, error=e)
        if not result.ok:
            logger.debug(f"Security journal not removed from store: {result.error}")

    def __len__(self) -> int:
        return len(self._events)
