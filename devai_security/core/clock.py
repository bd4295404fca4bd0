"""
Clock collaborators.

All components read time exclusively through a clock so that window and
block expiry can be driven deterministically.
"""

import time
from typing import Protocol


class Clock(Protocol):
    """Source of the current time in milliseconds since the epoch"""

    def now(self) -> int:
        ...


class SystemClock:
    """Wall-clock time; survives restarts, which persisted records rely on"""

    def now(self) -> int:
        return int(time.time() * 1000)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: int = 0):
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, ms: int) -> int:
        self._now += ms
        return self._now

    def set(self, ms: int) -> None:
        self._now = ms
