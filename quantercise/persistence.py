"""Persistence gateway for preferences, scores, history and streaks.

Every method is a coroutine wrapping one or more independent key-value calls
against whichever ``KeyValueStore`` was opened at startup. Callers in the
drill loop submit these through ``BackgroundJobs`` and never wait on them.
"""

from __future__ import annotations

from enum import Enum

from .clock import Calendar
from .presets import HISTORY_LIMIT
from .scoring import SessionRecord
from .storage import (
    KEY_BEST_SCORE,
    KEY_HISTORY,
    KEY_LAST_SCORE,
    KEY_SOUND_ENABLED,
    KEY_THEME,
    KEY_TOTAL_DRILLS,
    KeyValueStore,
    StorageError,
    read_int,
)
from .streak import StreakInfo, StreakTracker, StreakUpdate


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"

    def next(self) -> "Theme":
        order = (Theme.LIGHT, Theme.DARK, Theme.SYSTEM)
        return order[(order.index(self) + 1) % len(order)]


class ProgressStore:
    def __init__(self, store: KeyValueStore, calendar: Calendar) -> None:
        self._store = store
        self._streaks = StreakTracker(store, calendar)

    async def get_theme(self) -> Theme:
        raw = await self._store.get(KEY_THEME)
        try:
            return Theme(raw) if raw else Theme.SYSTEM
        except ValueError:
            return Theme.SYSTEM

    async def set_theme(self, theme: Theme) -> None:
        await self._store.set(KEY_THEME, Theme(theme).value)

    async def get_sound_enabled(self) -> bool:
        # Only an explicit False disables sound.
        return (await self._store.get(KEY_SOUND_ENABLED)) is not False

    async def set_sound_enabled(self, enabled: bool) -> None:
        await self._store.set(KEY_SOUND_ENABLED, bool(enabled))

    async def get_best_score(self) -> int:
        return await read_int(self._store, KEY_BEST_SCORE)

    async def set_best_score(self, score: int) -> bool:
        """Store ``score`` only if it beats the best; return whether it did."""

        if score > await self.get_best_score():
            await self._store.set(KEY_BEST_SCORE, int(score))
            return True
        return False

    async def get_last_score(self) -> SessionRecord | None:
        raw = await self._store.get(KEY_LAST_SCORE)
        if not raw:
            return None
        return _record_from_raw(raw)

    async def set_last_score(self, record: SessionRecord) -> None:
        await self._store.set(KEY_LAST_SCORE, record.to_dict())

    async def get_total_drills(self) -> int:
        return await read_int(self._store, KEY_TOTAL_DRILLS)

    async def increment_total_drills(self) -> int:
        total = await self.get_total_drills() + 1
        await self._store.set(KEY_TOTAL_DRILLS, total)
        return total

    async def get_history(self) -> list[SessionRecord]:
        """Most recent first, at most ``HISTORY_LIMIT`` entries."""

        raw = await self._store.get(KEY_HISTORY) or []
        if not isinstance(raw, list):
            raise StorageError("history is not a list")
        return [_record_from_raw(item) for item in raw[:HISTORY_LIMIT]]

    async def add_to_history(self, record: SessionRecord) -> None:
        raw = await self._store.get(KEY_HISTORY) or []
        if not isinstance(raw, list):
            raise StorageError("history is not a list")
        raw.insert(0, record.to_dict())
        await self._store.set(KEY_HISTORY, raw[:HISTORY_LIMIT])

    async def get_streak_info(self) -> StreakInfo:
        return await self._streaks.read_for_display()

    async def update_streak(self) -> StreakUpdate:
        return await self._streaks.record_completion()


def _record_from_raw(raw: object) -> SessionRecord:
    if not isinstance(raw, dict):
        raise StorageError(f"unexpected session record {raw!r}")
    try:
        return SessionRecord.from_dict(raw)
    except (TypeError, ValueError) as exc:
        raise StorageError(f"unreadable session record {raw!r}") from exc
