"""Injectable time sources.

Services take a clock instead of calling ``datetime.now`` so that date
rules ("check-in not in the past", "stay completed") are testable.
"""

import datetime as dt
import threading
from typing import Protocol


class Clock(Protocol):
    """Source of the current time (UTC)."""

    def now(self) -> dt.datetime: ...

    def today(self) -> dt.date: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> dt.datetime:
        return dt.datetime.now(dt.UTC)

    def today(self) -> dt.date:
        return self.now().date()


class FrozenClock:
    """Clock pinned to a fixed instant that tests can move forward."""

    def __init__(self, instant: dt.datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=dt.UTC)
        self._instant = instant
        self._lock = threading.Lock()

    def now(self) -> dt.datetime:
        with self._lock:
            return self._instant

    def today(self) -> dt.date:
        return self.now().date()

    def advance(self, **delta: float) -> None:
        """Move the clock forward by ``timedelta(**delta)``."""
        with self._lock:
            self._instant += dt.timedelta(**delta)

    def set(self, instant: dt.datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=dt.UTC)
        with self._lock:
            self._instant = instant
