"""Calendar-day streak bookkeeping.

Streaks count consecutive calendar dates with at least one completed drill;
time of day never matters. The write path (:func:`advance_streak`) and the
read path (:func:`display_streak`) each compute the day gap independently.

The read path reports a broken streak as 0 but does not persist anything, so
the stored ``current_streak`` keeps its old value until the next completed
drill resets it. That divergence between display and storage is kept as is.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date

from .clock import Calendar
from .storage import (
    KEY_CURRENT_STREAK,
    KEY_LAST_ACTIVITY_DATE,
    KEY_LONGEST_STREAK,
    KeyValueStore,
    StorageError,
    read_int,
)


@dataclass(frozen=True, slots=True)
class StreakState:
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: date | None = None


@dataclass(frozen=True, slots=True)
class StreakUpdate:
    current_streak: int
    longest_streak: int
    is_new_record: bool
    state: StreakState


@dataclass(frozen=True, slots=True)
class StreakInfo:
    current_streak: int
    longest_streak: int
    is_active: bool


def day_gap(last: date, today: date) -> int:
    return (today - last).days


def advance_streak(state: StreakState, today: date) -> StreakUpdate:
    """Apply one completed drill on ``today``."""

    current = state.current_streak
    if state.last_activity_date is None:
        current = 1
    else:
        diff = day_gap(state.last_activity_date, today)
        if diff == 0:
            pass
        elif diff == 1:
            current += 1
        else:
            # Includes negative gaps after the system date moved backwards.
            current = 1

    longest = state.longest_streak
    is_new_record = current > longest
    if is_new_record:
        longest = current

    new_state = replace(
        state,
        current_streak=current,
        longest_streak=longest,
        last_activity_date=today,
    )
    return StreakUpdate(
        current_streak=current,
        longest_streak=longest,
        is_new_record=is_new_record,
        state=new_state,
    )


def display_streak(state: StreakState, today: date) -> StreakInfo:
    current = state.current_streak
    is_active = False
    if state.last_activity_date is not None:
        diff = day_gap(state.last_activity_date, today)
        is_active = diff <= 1
        if diff > 1:
            current = 0
    return StreakInfo(current_streak=current, longest_streak=state.longest_streak, is_active=is_active)


class StreakTracker:
    def __init__(self, store: KeyValueStore, calendar: Calendar) -> None:
        self._store = store
        self._calendar = calendar

    async def load_state(self) -> StreakState:
        raw_date = await self._store.get(KEY_LAST_ACTIVITY_DATE)
        try:
            last = date.fromisoformat(str(raw_date)[:10]) if raw_date else None
        except ValueError as exc:
            raise StorageError(f"unreadable last activity date {raw_date!r}") from exc
        return StreakState(
            current_streak=await read_int(self._store, KEY_CURRENT_STREAK),
            longest_streak=await read_int(self._store, KEY_LONGEST_STREAK),
            last_activity_date=last,
        )

    async def record_completion(self) -> StreakUpdate:
        today = self._calendar.today()
        state = await self.load_state()
        update = advance_streak(state, today)

        if update.is_new_record:
            await self._store.set(KEY_LONGEST_STREAK, update.longest_streak)
        await self._store.set(KEY_CURRENT_STREAK, update.current_streak)
        await self._store.set(KEY_LAST_ACTIVITY_DATE, today.isoformat())
        return update

    async def read_for_display(self) -> StreakInfo:
        state = await self.load_state()
        return display_streak(state, self._calendar.today())
