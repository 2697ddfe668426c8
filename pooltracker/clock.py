"""Time sources for yield and ROI age calculations."""

import time
from typing import Protocol


class Clock(Protocol):
    """Current time as integer unix seconds."""

    def now(self) -> int: ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Clock that only moves when told to (tests, simulations, replays)."""

    def __init__(self, start: int = 0) -> None:
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError(f"Cannot move a clock backwards: {seconds}")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        self._now = timestamp
