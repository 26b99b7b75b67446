"""Time sources for lock expiry checks (integer seconds)."""
from __future__ import annotations

import threading
import time


class SystemClock:
    """Wall-clock time, truncated to whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Clock that only moves when told to. Used by replays and tests."""

    def __init__(self, start: int = 0) -> None:
        self._now = int(start)
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")
        with self._lock:
            self._now += int(seconds)
            return self._now

    def set(self, timestamp: int) -> None:
        with self._lock:
            if timestamp < self._now:
                raise ValueError("Cannot move a clock backwards")
            self._now = int(timestamp)
