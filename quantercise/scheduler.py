"""Cooperative single-threaded scheduler on virtual millisecond time.

Time only moves when :meth:`Scheduler.advance` is called. The UI loop feeds it
real elapsed time from a ``Clock``; tests feed it exact amounts. Due callbacks
run in time order (ties in registration order) and may freely schedule or
cancel other callbacks, including themselves.
"""

from __future__ import annotations

import heapq
from collections.abc import Callable


class TimerHandle:
    def __init__(self, when_ms: int, interval_ms: int | None, callback: Callable[[], None]) -> None:
        self._when_ms = when_ms
        self._interval_ms = interval_ms
        self._callback = callback
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def when_ms(self) -> int:
        return self._when_ms

    def cancel(self) -> None:
        self._cancelled = True


class Scheduler:
    def __init__(self) -> None:
        self._now_ms = 0
        self._seq = 0
        self._queue: list[tuple[int, int, TimerHandle]] = []

    @property
    def now_ms(self) -> int:
        return self._now_ms

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        handle = TimerHandle(self._now_ms + int(delay_ms), None, callback)
        self._push(handle)
        return handle

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        handle = TimerHandle(self._now_ms + int(interval_ms), int(interval_ms), callback)
        self._push(handle)
        return handle

    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def advance(self, ms: int) -> None:
        if ms < 0:
            raise ValueError("Cannot advance scheduler backwards")
        target = self._now_ms + int(ms)
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now_ms = when
            if handle._interval_ms is not None:
                handle._when_ms = when + handle._interval_ms
                self._push(handle)
            handle._callback()
        self._now_ms = target

    def _push(self, handle: TimerHandle) -> None:
        heapq.heappush(self._queue, (handle.when_ms, self._seq, handle))
        self._seq += 1
