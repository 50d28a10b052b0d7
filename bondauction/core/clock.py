"""
Clocks - the single time source every phase gate reads.

All deadlines are compared against one monotonically non-decreasing
integer clock (seconds), the off-chain equivalent of ledger block time.
"""

import threading
import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of the current timestamp in whole seconds."""

    def now(self) -> int:
        ...


class SystemClock:
    """
    Wall-clock seconds, clamped so that readings never go backwards.
    """

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class ManualClock:
    """
    Explicitly driven clock for simulations and tests.

    Args:
        start: Initial timestamp
    """

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Clock cannot start before 0")
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move time forward by `seconds` and return the new timestamp."""
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += seconds
        return self._now

    def set_time(self, timestamp: int) -> int:
        """Jump to `timestamp`, which must not be in the past."""
        if timestamp < self._now:
            raise ValueError(f"Clock cannot move backwards: {timestamp} < {self._now}")
        self._now = timestamp
        return self._now
