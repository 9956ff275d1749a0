from __future__ import annotations

import pytest

from quantercise.drill_timer import DrillTimer, TimerEvent, TimerLevel, format_clock


def test_quick_drill_timer_expires_after_exactly_1200_ticks() -> None:
    timer = DrillTimer(120_000, tick_ms=100)
    events: list[TimerEvent] = []

    for i in range(1, 1201):
        tick_events = timer.tick()
        events.extend(tick_events)
        if i < 1200:
            assert not timer.expired
            assert TimerEvent.EXPIRED not in tick_events

    assert timer.expired
    assert timer.remaining_ms == 0
    assert timer.elapsed_ms == 120_000
    assert events.count(TimerEvent.LOW) == 1
    assert events.count(TimerEvent.CRITICAL) == 1
    assert events.count(TimerEvent.EXPIRED) == 1
    assert events[-1] is TimerEvent.EXPIRED


def test_low_and_critical_fire_on_their_boundary_ticks() -> None:
    timer = DrillTimer(120_000, tick_ms=100)
    fired_at: dict[TimerEvent, int] = {}
    for i in range(1, 1201):
        for ev in timer.tick():
            fired_at.setdefault(ev, i)

    # 25% of 120 s remaining at tick 900, 10% at tick 1080.
    assert fired_at[TimerEvent.LOW] == 900
    assert fired_at[TimerEvent.CRITICAL] == 1080
    assert fired_at[TimerEvent.EXPIRED] == 1200


def test_no_events_after_expiry_or_stop() -> None:
    timer = DrillTimer(300, tick_ms=100)
    for _ in range(3):
        timer.tick()
    assert timer.expired
    assert timer.tick() == []
    assert timer.remaining_ms == 0

    stopped = DrillTimer(1000, tick_ms=100)
    stopped.stop()
    assert not stopped.active
    assert stopped.tick() == []
    assert stopped.remaining_ms == 1000


def test_remaining_is_clamped_at_zero() -> None:
    timer = DrillTimer(250, tick_ms=100)
    timer.tick()
    timer.tick()
    assert timer.tick() == [TimerEvent.EXPIRED]
    assert timer.remaining_ms == 0


def test_level_tracks_remaining_fraction() -> None:
    timer = DrillTimer(1000, tick_ms=100)
    assert timer.level is TimerLevel.NORMAL
    for _ in range(8):
        timer.tick()
    assert timer.level is TimerLevel.LOW
    timer.tick()
    assert timer.level is TimerLevel.CRITICAL


def test_invalid_construction_rejected() -> None:
    with pytest.raises(ValueError):
        DrillTimer(0)
    with pytest.raises(ValueError):
        DrillTimer(1000, tick_ms=0)


def test_format_clock_rounds_seconds_up() -> None:
    assert format_clock(120_000) == "2:00"
    assert format_clock(119_901) == "2:00"
    assert format_clock(119_000) == "1:59"
    assert format_clock(59_001) == "1:00"
    assert format_clock(100) == "0:01"
    assert format_clock(0) == "0:00"
    assert format_clock(-5) == "0:00"
