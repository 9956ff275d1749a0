from __future__ import annotations

from collections.abc import Callable

from .audio_events import SoundEvent
from .presets import COUNTDOWN_GO_MS, COUNTDOWN_SEQUENCE, COUNTDOWN_TICK_MS
from .scheduler import Scheduler, TimerHandle


class CountdownSequencer:
    """Pre-drill ``3, 2, 1, GO`` sequence on the cooperative scheduler.

    ``on_step`` receives each displayed value as it appears; ``on_complete``
    fires exactly once per :meth:`start`, either after GO has been held or
    immediately on :meth:`skip`.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        on_step: Callable[[int | str], None],
        on_complete: Callable[[], None],
        play_sound: Callable[[SoundEvent], None] | None = None,
        sequence: tuple[int | str, ...] = COUNTDOWN_SEQUENCE,
        tick_ms: int = COUNTDOWN_TICK_MS,
        go_ms: int = COUNTDOWN_GO_MS,
    ) -> None:
        if not sequence:
            raise ValueError("sequence must not be empty")
        self._scheduler = scheduler
        self._on_step = on_step
        self._on_complete = on_complete
        self._play_sound = play_sound
        self._sequence = tuple(sequence)
        self._tick_ms = int(tick_ms)
        self._go_ms = int(go_ms)

        self._index = 0
        self._pending: TimerHandle | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def index(self) -> int:
        return self._index

    @property
    def value(self) -> int | str:
        return self._sequence[self._index]

    def start(self) -> None:
        self.cancel()
        self._running = True
        self._index = 0
        self._show_current()

    def skip(self) -> None:
        if not self._running:
            return
        self._finish()

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self._running = False

    def _show_current(self) -> None:
        value = self.value
        self._on_step(value)
        is_last = self._index == len(self._sequence) - 1
        if self._play_sound is not None:
            self._play_sound(SoundEvent.GO if is_last else SoundEvent.COUNTDOWN)
        if is_last:
            self._pending = self._scheduler.call_later(self._go_ms, self._finish)
        else:
            self._pending = self._scheduler.call_later(self._tick_ms, self._advance)

    def _advance(self) -> None:
        self._pending = None
        self._index += 1
        self._show_current()

    def _finish(self) -> None:
        self.cancel()
        self._on_complete()
