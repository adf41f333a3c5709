"""
Time sources for the staking pool.

All pool arithmetic runs on integer seconds since the epoch. `ManualClock`
lets tests and simulations move time forward deterministically.
"""

import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Shared monotonic time source."""

    @abstractmethod
    def now(self) -> int:
        """Current time in whole seconds since the epoch."""


class SystemClock(Clock):
    """Wall-clock time, truncated to seconds and never running backwards."""

    def __init__(self):
        self._last = 0

    def now(self) -> int:
        self._last = max(self._last, int(time.time()))
        return self._last


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Clock start cannot be negative")
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move forward by *seconds* and return the new time."""
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += int(seconds)
        return self._now

    def set(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError(f"Clock cannot move backwards ({timestamp} < {self._now})")
        self._now = int(timestamp)
        return self._now

    def __repr__(self) -> str:
        return f"<ManualClock now={self._now}>"
