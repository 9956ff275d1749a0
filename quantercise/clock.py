from __future__ import annotations

import time
from datetime import date, datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    The UI loop converts real elapsed time into scheduler ticks through this
    interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class Calendar(Protocol):
    """Wall-clock source for streak days and record timestamps."""

    def today(self) -> date:
        """Return the local calendar date."""

    def now_iso(self) -> str:
        """Return the current UTC instant as an ISO-8601 string."""


class SystemCalendar:
    def today(self) -> date:
        return date.today()

    def now_iso(self) -> str:
        return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
