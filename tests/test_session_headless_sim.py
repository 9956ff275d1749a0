from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

import pytest

from quantercise.audio_events import SoundEvent
from quantercise.jobs import BackgroundJobs
from quantercise.persistence import ProgressStore, Theme
from quantercise.presets import QUICK_DRILL, BenchmarkLevel, Operation
from quantercise.scheduler import Scheduler
from quantercise.session import Screen, SessionController
from quantercise.storage import (
    KEY_BEST_SCORE,
    KEY_CURRENT_STREAK,
    KEY_HISTORY,
    KEY_LAST_SCORE,
    KEY_SOUND_ENABLED,
    KEY_THEME,
    KEY_TOTAL_DRILLS,
    StorageError,
)

COUNTDOWN_MS = 3 * 700 + 500
ADD_ONLY_30S = replace(QUICK_DRILL, operations=(Operation.ADD,), time_limit_s=30)


@dataclass
class FakeCalendar:
    day: date = date(2026, 3, 10)

    def today(self) -> date:
        return self.day

    def now_iso(self) -> str:
        return f"{self.day.isoformat()}T12:00:00.000Z"


@dataclass
class MemoryStore:
    values: dict[str, Any] = field(default_factory=dict)

    async def get(self, key: str) -> Any:
        return self.values.get(key)

    async def set(self, key: str, value: Any) -> None:
        self.values[key] = value

    async def remove(self, key: str) -> None:
        self.values.pop(key, None)


@dataclass
class RecordingSoundPlayer:
    enabled: bool = True
    played: list[SoundEvent] = field(default_factory=list)

    def play(self, event: SoundEvent) -> None:
        if self.enabled:
            self.played.append(event)


class BrokenStore:
    async def get(self, key: str) -> Any:
        raise StorageError("disk unavailable")

    async def set(self, key: str, value: Any) -> None:
        raise StorageError("disk unavailable")

    async def remove(self, key: str) -> None:
        raise StorageError("disk unavailable")


@dataclass
class Harness:
    controller: SessionController
    scheduler: Scheduler
    jobs: BackgroundJobs
    sound: RecordingSoundPlayer
    store: Any

    def enter_drill(self) -> None:
        self.controller.start()
        self.scheduler.advance(COUNTDOWN_MS)
        assert self.controller.screen is Screen.DRILL

    def answer_correctly(self) -> None:
        session = self.controller.session
        assert session is not None and session.current_problem is not None
        self.controller.submit_answer(str(session.current_problem.correct_answer))


@pytest.fixture
def make_harness() -> Iterator[Callable[..., Harness]]:
    created: list[BackgroundJobs] = []

    def build(*, store: Any = None, preset=ADD_ONLY_30S, seed: int = 7) -> Harness:
        scheduler = Scheduler()
        calendar = FakeCalendar()
        kv = MemoryStore() if store is None else store
        jobs = BackgroundJobs()
        created.append(jobs)
        sound = RecordingSoundPlayer()
        controller = SessionController(
            scheduler=scheduler,
            progress=ProgressStore(kv, calendar),
            jobs=jobs,
            sound=sound,
            calendar=calendar,
            preset=preset,
            seed=seed,
        )
        return Harness(controller, scheduler, jobs, sound, kv)

    yield build
    for jobs in created:
        jobs.close()


def test_headless_scripted_run_produces_expected_record(make_harness: Callable[..., Harness]) -> None:
    h = make_harness()
    ctl = h.controller

    ctl.start()
    assert ctl.screen is Screen.COUNTDOWN
    assert ctl.snapshot().countdown_value == 3
    h.scheduler.advance(COUNTDOWN_MS)
    assert ctl.screen is Screen.DRILL
    assert ctl.snapshot().time_text == "0:30"

    for _ in range(5):
        h.answer_correctly()
        snap = ctl.snapshot()
        assert snap.feedback is not None and snap.feedback.is_correct
        assert not snap.input_enabled
        h.scheduler.advance(600)
        assert ctl.input_enabled

    h.scheduler.advance(30_000)
    assert ctl.screen is Screen.RESULTS

    record = ctl.record
    assert record is not None
    assert record.score == 5
    assert record.correct_count == 5
    assert record.incorrect_count == 0
    assert record.skipped_count == 0
    assert record.qpm == 10.0
    assert record.accuracy_percent == 100
    assert record.benchmark_level is BenchmarkLevel.BELOW_PASSING
    assert record.date == "2026-03-10T12:00:00.000Z"

    assert h.sound.played.count(SoundEvent.CORRECT) == 5
    assert h.sound.played.count(SoundEvent.LOW_TIME) == 1
    assert h.sound.played[-1] is SoundEvent.COMPLETE

    # Results arrive only once the background jobs run.
    assert ctl.is_new_best is None
    h.jobs.drain()
    assert ctl.is_new_best is True
    assert ctl.streak_update is not None and ctl.streak_update.current_streak == 1

    assert h.store.values[KEY_BEST_SCORE] == 5
    assert h.store.values[KEY_LAST_SCORE] == record.to_dict()
    assert h.store.values[KEY_HISTORY] == [record.to_dict()]
    assert h.store.values[KEY_TOTAL_DRILLS] == 1


def test_incorrect_and_skipped_answers_are_counted_separately(make_harness: Callable[..., Harness]) -> None:
    h = make_harness()
    ctl = h.controller
    h.enter_drill()

    problem = ctl.session.current_problem
    ctl.submit_answer(str(problem.correct_answer + 1))
    snap = ctl.snapshot()
    assert snap.feedback is not None
    assert snap.feedback.is_correct is False
    assert snap.feedback.correct_answer == problem.correct_answer
    h.scheduler.advance(600)

    # Blank input is a skip: no feedback pause, next problem straight away.
    before = ctl.session.current_problem
    ctl.submit_answer("   ")
    assert ctl.input_enabled
    assert ctl.session.current_problem is not before

    ctl.skip_problem()

    snap = ctl.snapshot()
    assert (snap.score, snap.correct_count, snap.incorrect_count, snap.skipped_count) == (0, 0, 1, 2)
    assert [r.is_correct for r in ctl.session.results] == [False, None, None]
    assert ctl.session.results[0].user_answer == str(problem.correct_answer + 1)
    assert ctl.session.results[1].user_answer is None
    assert h.sound.played.count(SoundEvent.SKIP) == 2
    assert h.sound.played.count(SoundEvent.INCORRECT) == 1


def test_input_ignored_during_feedback_pause(make_harness: Callable[..., Harness]) -> None:
    h = make_harness()
    ctl = h.controller
    h.enter_drill()

    h.answer_correctly()
    shown = ctl.session.current_problem
    ctl.submit_answer("1")
    ctl.skip_problem()
    assert len(ctl.session.results) == 1
    assert ctl.session.current_problem is shown

    h.scheduler.advance(599)
    assert ctl.session.current_problem is shown
    h.scheduler.advance(1)
    assert ctl.session.current_problem is not shown


def test_skip_countdown_starts_drill_once(make_harness: Callable[..., Harness]) -> None:
    h = make_harness()
    ctl = h.controller

    ctl.start()
    h.scheduler.advance(700)
    ctl.skip_countdown()
    assert ctl.screen is Screen.DRILL
    session = ctl.session

    h.scheduler.advance(COUNTDOWN_MS)
    assert ctl.session is session
    assert ctl.timer is not None
    assert ctl.timer.remaining_ms == 30_000 - COUNTDOWN_MS


def test_exit_modal_keeps_clock_running_and_blocks_input(make_harness: Callable[..., Harness]) -> None:
    h = make_harness()
    ctl = h.controller
    h.enter_drill()

    ctl.request_exit()
    assert ctl.exit_modal_open
    h.answer_correctly()
    assert ctl.session.results == []

    h.scheduler.advance(1000)
    assert ctl.session.time_remaining_ms == 29_000

    ctl.cancel_exit()
    assert not ctl.exit_modal_open
    h.answer_correctly()
    assert len(ctl.session.results) == 1


def test_confirmed_exit_discards_session_without_saving(make_harness: Callable[..., Harness]) -> None:
    h = make_harness()
    ctl = h.controller
    h.enter_drill()
    h.answer_correctly()

    ctl.confirm_exit()
    assert ctl.screen is Screen.DRILL

    ctl.request_exit()
    ctl.confirm_exit()
    assert ctl.screen is Screen.HOME
    assert ctl.session is None
    assert ctl.record is None

    h.scheduler.advance(60_000)
    h.jobs.drain()
    assert ctl.screen is Screen.HOME
    assert h.scheduler.pending() == 0
    assert KEY_BEST_SCORE not in h.store.values
    assert KEY_HISTORY not in h.store.values
    assert SoundEvent.COMPLETE not in h.sound.played


def test_expiry_while_modal_open_completes_drill(make_harness: Callable[..., Harness]) -> None:
    h = make_harness()
    ctl = h.controller
    h.enter_drill()

    ctl.request_exit()
    h.scheduler.advance(30_000)
    assert ctl.screen is Screen.RESULTS
    assert not ctl.exit_modal_open

    ctl.confirm_exit()
    assert ctl.screen is Screen.RESULTS


def test_expiry_during_feedback_cancels_pending_advance(make_harness: Callable[..., Harness]) -> None:
    h = make_harness()
    ctl = h.controller
    h.enter_drill()

    h.scheduler.advance(29_900)
    h.answer_correctly()
    h.scheduler.advance(100)
    assert ctl.screen is Screen.RESULTS
    assert ctl.record is not None and ctl.record.score == 1

    h.scheduler.advance(1_000)
    assert ctl.screen is Screen.RESULTS
    assert not ctl.input_enabled
    assert h.scheduler.pending() == 0


def test_retry_starts_fresh_session_and_home_shows_stats(make_harness: Callable[..., Harness]) -> None:
    h = make_harness()
    ctl = h.controller

    h.enter_drill()
    for _ in range(3):
        h.answer_correctly()
        h.scheduler.advance(600)
    h.scheduler.advance(30_000)
    h.jobs.drain()
    first = ctl.record

    ctl.start()
    assert ctl.screen is Screen.COUNTDOWN
    assert ctl.record is None
    assert ctl.is_new_best is None
    h.scheduler.advance(COUNTDOWN_MS)
    assert ctl.session.score == 0
    h.answer_correctly()
    h.scheduler.advance(30_000)
    h.jobs.drain()
    assert ctl.record is not first
    assert ctl.is_new_best is False

    ctl.go_home()
    h.jobs.drain()
    stats = ctl.snapshot().stats
    assert ctl.screen is Screen.HOME
    assert stats.best_score == 3
    assert stats.last_score is not None and stats.last_score.score == 1
    assert stats.total_drills == 2
    assert [r.score for r in stats.history] == [1, 3]
    assert (stats.current_streak, stats.longest_streak, stats.streak_active) == (1, 1, True)


def test_late_results_from_previous_drill_are_ignored(make_harness: Callable[..., Harness]) -> None:
    h = make_harness()
    ctl = h.controller

    h.enter_drill()
    h.answer_correctly()
    h.scheduler.advance(30_000)
    assert ctl.screen is Screen.RESULTS

    ctl.start()
    h.jobs.drain()
    assert ctl.is_new_best is None
    assert ctl.streak_update is None
    assert h.store.values[KEY_BEST_SCORE] == 1


def test_transitions_ignored_from_wrong_screen(make_harness: Callable[..., Harness]) -> None:
    h = make_harness()
    ctl = h.controller

    ctl.skip_countdown()
    ctl.request_exit()
    ctl.go_home()
    ctl.submit_answer("5")
    assert ctl.screen is Screen.HOME
    assert not ctl.exit_modal_open

    h.enter_drill()
    session = ctl.session
    ctl.start()
    assert ctl.screen is Screen.DRILL
    assert ctl.session is session


def test_failing_store_never_blocks_the_drill(make_harness: Callable[..., Harness]) -> None:
    h = make_harness(store=BrokenStore())
    ctl = h.controller

    ctl.load_preferences()
    ctl.refresh_stats()
    h.jobs.drain()
    assert ctl.theme is Theme.SYSTEM

    h.enter_drill()
    h.answer_correctly()
    h.scheduler.advance(30_000)
    assert ctl.screen is Screen.RESULTS
    assert ctl.record is not None and ctl.record.score == 1

    failures_before = h.jobs.failures
    h.jobs.drain()
    assert h.jobs.failures == failures_before + 5
    assert ctl.is_new_best is None
    assert ctl.streak_update is None

    ctl.start()
    h.scheduler.advance(COUNTDOWN_MS)
    assert ctl.screen is Screen.DRILL


def test_corrupt_counters_do_not_block_home_or_the_drill(make_harness: Callable[..., Harness]) -> None:
    h = make_harness(store=MemoryStore({KEY_BEST_SCORE: "abc", KEY_CURRENT_STREAK: "x", KEY_TOTAL_DRILLS: 4}))
    ctl = h.controller

    ctl.refresh_stats()
    assert h.jobs.drain() == 5
    assert h.jobs.failures == 2
    stats = ctl.snapshot().stats
    assert stats.best_score == 0
    assert stats.total_drills == 4

    h.enter_drill()
    h.answer_correctly()
    assert ctl.session.correct_count == 1


def test_theme_and_sound_preferences_persist(make_harness: Callable[..., Harness]) -> None:
    h = make_harness()
    ctl = h.controller
    h.store.values[KEY_THEME] = "dark"
    h.store.values[KEY_SOUND_ENABLED] = False

    ctl.load_preferences()
    h.jobs.drain()
    assert ctl.theme is Theme.DARK
    assert h.sound.enabled is False

    assert ctl.cycle_theme() is Theme.SYSTEM
    assert ctl.toggle_sound() is True
    h.jobs.drain()
    assert h.store.values[KEY_THEME] == "system"
    assert h.store.values[KEY_SOUND_ENABLED] is True

    ctl.toggle_sound()
    h.enter_drill()
    assert h.sound.played == []
