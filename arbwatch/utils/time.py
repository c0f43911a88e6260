"""Time utilities for the arbitrage engine."""

import time
from datetime import datetime, timedelta, timezone
from typing import Callable


def utc_now() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def seconds_until(target: datetime, now: datetime | None = None) -> int:
    """Calculate whole seconds until target datetime, floored at zero."""
    delta = target - (now or utc_now())
    return max(0, int(delta.total_seconds()))


def age_seconds(moment: datetime, now: datetime) -> float:
    """Seconds elapsed since `moment`. Future timestamps count as age zero."""
    return max(0.0, (now - moment).total_seconds())


def after(now: datetime, seconds: float) -> datetime:
    """Return `now` shifted forward by `seconds`."""
    return now + timedelta(seconds=seconds)


class Timer:
    """Wall-clock stopwatch for scan durations. Reads the running total until stopped."""

    def __init__(self, counter: Callable[[], float] = time.perf_counter):
        self._counter = counter
        self._started: float | None = None
        self._stopped: float | None = None

    def start(self) -> "Timer":
        self._started, self._stopped = self._counter(), None
        return self

    def stop(self) -> "Timer":
        if self._stopped is None:
            self._stopped = self._counter()
        return self

    @property
    def elapsed_ms(self) -> float:
        if self._started is None:
            return 0.0
        stopped = self._stopped if self._stopped is not None else self._counter()
        return (stopped - self._started) * 1000
