"""
Incident Tracker - Clock and Identifiers.

============================================================
RESPONSIBILITY
============================================================
Provides a testable millisecond clock and the incident id
generator.

- Incident timestamps come from a ClockProtocol
- Tests swap in MockClock for deterministic timestamps
- Ids are derived from the clock but strictly increasing

============================================================
"""

import threading
import time
from abc import ABC, abstractmethod
from typing import Optional


# ============================================================
# CLOCK PROTOCOL
# ============================================================

class ClockProtocol(ABC):
    """Abstract interface for the tracker clock."""

    @abstractmethod
    def now_millis(self) -> int:
        """Get current time in milliseconds since the epoch."""
        pass


class SystemClock(ClockProtocol):
    """Production clock using actual system time."""

    def now_millis(self) -> int:
        return time.time_ns() // 1_000_000


class MockClock(ClockProtocol):
    """
    Mock clock for testing.

    Allows time manipulation for deterministic tests.
    """

    def __init__(self, initial_millis: int = 1_700_000_000_000):
        self._millis = initial_millis
        self._lock = threading.Lock()

    def now_millis(self) -> int:
        with self._lock:
            return self._millis

    def set_millis(self, millis: int) -> None:
        """Set the current time."""
        with self._lock:
            self._millis = millis

    def advance(self, millis: int = 0, seconds: float = 0, minutes: float = 0) -> None:
        """Advance time by the specified amount."""
        with self._lock:
            self._millis += millis + int(seconds * 1000) + int(minutes * 60_000)


# ============================================================
# ID GENERATOR
# ============================================================

class IncidentIdGenerator:
    """
    Generates incident ids from creation time.

    An id is the current millisecond, bumped past the last issued id
    when two incidents land in the same millisecond. Ids are unique and
    strictly increasing within one generator.
    """

    def __init__(self, clock: Optional[ClockProtocol] = None):
        self._clock = clock or SystemClock()
        self._last_id = 0
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            candidate = self._clock.now_millis()
            if candidate <= self._last_id:
                candidate = self._last_id + 1
            self._last_id = candidate
            return candidate

    def seed(self, last_id: int) -> None:
        """Make sure future ids are greater than an id already in storage."""
        with self._lock:
            self._last_id = max(self._last_id, last_id)


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "IncidentIdGenerator",
]
