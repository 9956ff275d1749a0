from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

import pytest

from quantercise.storage import KEY_CURRENT_STREAK, KEY_LAST_ACTIVITY_DATE, KEY_LONGEST_STREAK, StorageError
from quantercise.streak import StreakState, StreakTracker, advance_streak, display_streak


@dataclass
class FakeCalendar:
    day: date = date(2026, 3, 10)

    def today(self) -> date:
        return self.day

    def now_iso(self) -> str:
        return f"{self.day.isoformat()}T12:00:00.000Z"

    def advance_days(self, n: int) -> None:
        self.day += timedelta(days=n)


@dataclass
class MemoryStore:
    values: dict[str, Any] = field(default_factory=dict)

    async def get(self, key: str) -> Any:
        return self.values.get(key)

    async def set(self, key: str, value: Any) -> None:
        self.values[key] = value

    async def remove(self, key: str) -> None:
        self.values.pop(key, None)


D = date(2026, 3, 10)


def test_first_completion_starts_at_one() -> None:
    update = advance_streak(StreakState(), D)
    assert update.current_streak == 1
    assert update.longest_streak == 1
    assert update.is_new_record
    assert update.state.last_activity_date == D


def test_same_day_is_unchanged() -> None:
    state = StreakState(current_streak=3, longest_streak=5, last_activity_date=D)
    update = advance_streak(state, D)
    assert update.current_streak == 3
    assert update.longest_streak == 5
    assert not update.is_new_record


def test_next_day_increments_and_can_set_record() -> None:
    state = StreakState(current_streak=5, longest_streak=5, last_activity_date=D)
    update = advance_streak(state, D + timedelta(days=1))
    assert update.current_streak == 6
    assert update.longest_streak == 6
    assert update.is_new_record


def test_gap_resets_to_one_and_longest_never_decreases() -> None:
    state = StreakState(current_streak=7, longest_streak=9, last_activity_date=D)
    update = advance_streak(state, D + timedelta(days=2))
    assert update.current_streak == 1
    assert update.longest_streak == 9
    assert not update.is_new_record


def test_backwards_date_resets_to_one() -> None:
    state = StreakState(current_streak=4, longest_streak=4, last_activity_date=D)
    update = advance_streak(state, D - timedelta(days=1))
    assert update.current_streak == 1
    assert update.longest_streak == 4


def test_display_reports_broken_streak_as_zero() -> None:
    state = StreakState(current_streak=4, longest_streak=6, last_activity_date=D)

    same = display_streak(state, D)
    assert (same.current_streak, same.is_active) == (4, True)

    next_day = display_streak(state, D + timedelta(days=1))
    assert (next_day.current_streak, next_day.is_active) == (4, True)

    broken = display_streak(state, D + timedelta(days=3))
    assert (broken.current_streak, broken.longest_streak, broken.is_active) == (0, 6, False)

    assert display_streak(StreakState(), D).is_active is False


def test_tracker_persists_and_display_does_not_write() -> None:
    store = MemoryStore()
    cal = FakeCalendar()
    tracker = StreakTracker(store, cal)

    first = asyncio.run(tracker.record_completion())
    assert first.current_streak == 1
    assert store.values[KEY_LAST_ACTIVITY_DATE] == "2026-03-10"

    cal.advance_days(1)
    second = asyncio.run(tracker.record_completion())
    assert second.current_streak == 2
    assert store.values[KEY_CURRENT_STREAK] == 2
    assert store.values[KEY_LONGEST_STREAK] == 2

    cal.advance_days(5)
    info = asyncio.run(tracker.read_for_display())
    assert info.current_streak == 0
    assert not info.is_active
    # The broken streak is only reset in storage by the next completion.
    assert store.values[KEY_CURRENT_STREAK] == 2

    third = asyncio.run(tracker.record_completion())
    assert third.current_streak == 1
    assert store.values[KEY_CURRENT_STREAK] == 1
    assert store.values[KEY_LONGEST_STREAK] == 2


def test_unreadable_date_is_storage_error() -> None:
    store = MemoryStore({KEY_LAST_ACTIVITY_DATE: "not-a-date"})
    tracker = StreakTracker(store, FakeCalendar())
    with pytest.raises(StorageError):
        asyncio.run(tracker.read_for_display())
