from __future__ import annotations

from quantercise.audio_events import SoundEvent
from quantercise.countdown import CountdownSequencer
from quantercise.scheduler import Scheduler


def _build(scheduler: Scheduler) -> tuple[CountdownSequencer, list[int | str], list[int], list[SoundEvent]]:
    steps: list[int | str] = []
    done: list[int] = []
    played: list[SoundEvent] = []
    seq = CountdownSequencer(
        scheduler,
        on_step=steps.append,
        on_complete=lambda: done.append(scheduler.now_ms),
        play_sound=played.append,
    )
    return seq, steps, done, played


def test_full_countdown_sequence_and_timing() -> None:
    s = Scheduler()
    seq, steps, done, played = _build(s)

    seq.start()
    assert steps == [3]
    assert seq.running

    s.advance(700)
    assert steps == [3, 2]
    s.advance(700)
    assert steps == [3, 2, 1]
    s.advance(700)
    assert steps == [3, 2, 1, "GO"]
    assert done == []

    s.advance(499)
    assert done == []
    s.advance(1)
    assert done == [2600]
    assert not seq.running
    assert played == [SoundEvent.COUNTDOWN] * 3 + [SoundEvent.GO]


def test_skip_completes_immediately_and_once() -> None:
    s = Scheduler()
    seq, steps, done, _ = _build(s)

    seq.start()
    s.advance(700)
    seq.skip()
    assert done == [700]

    s.advance(10_000)
    assert done == [700]
    assert steps == [3, 2]


def test_skip_when_not_running_is_noop() -> None:
    s = Scheduler()
    seq, _, done, _ = _build(s)
    seq.skip()
    assert done == []


def test_restart_cancels_pending_step() -> None:
    s = Scheduler()
    seq, steps, done, _ = _build(s)

    seq.start()
    s.advance(1400)
    seq.start()
    assert steps == [3, 2, 1, 3]

    s.advance(2600)
    assert done == [4000]
    assert s.pending() == 0
