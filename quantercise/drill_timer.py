from __future__ import annotations

import math
from enum import Enum

from .presets import CRITICAL_TIME_THRESHOLD, LOW_TIME_THRESHOLD, TIMER_TICK_MS


class TimerEvent(str, Enum):
    LOW = "low"
    CRITICAL = "critical"
    EXPIRED = "expired"


class TimerLevel(str, Enum):
    NORMAL = "normal"
    LOW = "low"
    CRITICAL = "critical"


class DrillTimer:
    """Depleting drill clock advanced one fixed tick at a time.

    ``LOW`` and ``CRITICAL`` are latched: each is reported on the first tick
    whose remaining fraction lands in its band and never again for this
    instance. The tick that reaches zero reports only ``EXPIRED``; after it the
    timer is stopped and further ticks report nothing. A stopped timer cannot
    be restarted.
    """

    def __init__(
        self,
        total_ms: int,
        *,
        tick_ms: int = TIMER_TICK_MS,
        low_threshold: float = LOW_TIME_THRESHOLD,
        critical_threshold: float = CRITICAL_TIME_THRESHOLD,
    ) -> None:
        if total_ms <= 0:
            raise ValueError("total_ms must be > 0")
        if tick_ms <= 0:
            raise ValueError("tick_ms must be > 0")
        self._total_ms = int(total_ms)
        self._tick_ms = int(tick_ms)
        self._low_threshold = float(low_threshold)
        self._critical_threshold = float(critical_threshold)

        self._remaining_ms = self._total_ms
        self._low_fired = False
        self._critical_fired = False
        self._expired = False
        self._stopped = False

    @property
    def total_ms(self) -> int:
        return self._total_ms

    @property
    def tick_ms(self) -> int:
        return self._tick_ms

    @property
    def remaining_ms(self) -> int:
        return self._remaining_ms

    @property
    def elapsed_ms(self) -> int:
        return self._total_ms - self._remaining_ms

    @property
    def fraction(self) -> float:
        return self._remaining_ms / self._total_ms

    @property
    def expired(self) -> bool:
        return self._expired

    @property
    def active(self) -> bool:
        return not self._stopped

    @property
    def level(self) -> TimerLevel:
        fraction = self.fraction
        if fraction <= self._critical_threshold:
            return TimerLevel.CRITICAL
        if fraction <= self._low_threshold:
            return TimerLevel.LOW
        return TimerLevel.NORMAL

    def stop(self) -> None:
        self._stopped = True

    def tick(self) -> list[TimerEvent]:
        if self._stopped:
            return []

        self._remaining_ms -= self._tick_ms
        if self._remaining_ms <= 0:
            self._remaining_ms = 0
            self._expired = True
            self._stopped = True
            return [TimerEvent.EXPIRED]

        events: list[TimerEvent] = []
        fraction = self.fraction
        if not self._low_fired and fraction <= self._low_threshold:
            self._low_fired = True
            events.append(TimerEvent.LOW)
        if not self._critical_fired and fraction <= self._critical_threshold:
            self._critical_fired = True
            events.append(TimerEvent.CRITICAL)
        return events


def format_clock(ms: int) -> str:
    """Render remaining time as ``m:ss`` rounding seconds up."""

    seconds = int(math.ceil(max(0, ms) / 1000))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"
