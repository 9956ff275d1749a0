"""Session controller: one drill lifecycle on the cooperative scheduler.

    HOME -> COUNTDOWN -> DRILL -> RESULTS -> (COUNTDOWN | HOME)

The exit modal is an overlay on DRILL only. The drill clock keeps running
while the modal is open; confirming it discards the session without saving
anything. Timer expiry is the only way a drill completes.

All session and timer state is owned by the controller instance. Every
transition cancels the scheduler handles it supersedes, so at most one drill
timer, one countdown step and one feedback advance are ever pending. Storage
is touched only through ``BackgroundJobs``; late results (new best score,
streak, home stats) land on the controller whenever the jobs are drained.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum

from .audio_events import SoundEvent, SoundPlayer
from .clock import Calendar
from .countdown import CountdownSequencer
from .drill_timer import DrillTimer, TimerEvent, TimerLevel, format_clock
from .generator import Problem, ProblemGenerator, format_problem
from .jobs import BackgroundJobs
from .persistence import ProgressStore, Theme
from .presets import FEEDBACK_DISPLAY_MS, QUICK_DRILL, TIMER_TICK_MS, DrillPreset, ScoringRule
from .scheduler import Scheduler, TimerHandle
from .scoring import AnswerResult, Outcome, SessionRecord, points_for, summarize_session
from .streak import StreakInfo, StreakUpdate
from .validation import validate_answer

logger = logging.getLogger(__name__)


class Screen(str, Enum):
    HOME = "home"
    COUNTDOWN = "countdown"
    DRILL = "drill"
    RESULTS = "results"


@dataclass(slots=True)
class Session:
    time_remaining_ms: int
    score: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    skipped_count: int = 0
    results: list[AnswerResult] = field(default_factory=list)
    current_problem: Problem | None = None

    def record(self, result: AnswerResult, scoring: ScoringRule) -> Outcome:
        outcome = result.outcome
        if outcome is Outcome.CORRECT:
            self.correct_count += 1
        elif outcome is Outcome.INCORRECT:
            self.incorrect_count += 1
        else:
            self.skipped_count += 1
        self.score += points_for(outcome, scoring)
        self.results.append(result)
        return outcome


@dataclass(frozen=True, slots=True)
class HomeStats:
    best_score: int = 0
    last_score: SessionRecord | None = None
    total_drills: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    streak_active: bool = False
    history: tuple[SessionRecord, ...] = ()


@dataclass(frozen=True, slots=True)
class Feedback:
    is_correct: bool
    correct_answer: int


@dataclass(frozen=True, slots=True)
class DrillSnapshot:
    """View model for the UI (pure data)."""

    screen: Screen
    exit_modal_open: bool
    countdown_value: int | str | None
    problem_text: str
    input_enabled: bool
    feedback: Feedback | None
    score: int
    correct_count: int
    incorrect_count: int
    skipped_count: int
    answered: int
    time_remaining_ms: int
    time_text: str
    timer_level: TimerLevel
    record: SessionRecord | None
    is_new_best: bool | None
    streak_update: StreakUpdate | None
    stats: HomeStats
    theme: Theme
    sound_enabled: bool


class SessionController:
    def __init__(
        self,
        *,
        scheduler: Scheduler,
        progress: ProgressStore,
        jobs: BackgroundJobs,
        sound: SoundPlayer,
        calendar: Calendar,
        preset: DrillPreset = QUICK_DRILL,
        seed: int | None = None,
        tick_ms: int = TIMER_TICK_MS,
        feedback_ms: int = FEEDBACK_DISPLAY_MS,
    ) -> None:
        self._scheduler = scheduler
        self._progress = progress
        self._jobs = jobs
        self._sound = sound
        self._calendar = calendar
        self._preset = preset
        self._tick_ms = int(tick_ms)
        self._feedback_ms = int(feedback_ms)

        self._generator = ProblemGenerator(preset.operations, preset.ranges, seed=seed)
        self._countdown = CountdownSequencer(
            scheduler,
            on_step=self._on_countdown_step,
            on_complete=self._start_drill,
            play_sound=self._sound.play,
        )

        self._screen = Screen.HOME
        self._exit_modal_open = False
        self._countdown_value: int | str | None = None

        self._session: Session | None = None
        self._timer: DrillTimer | None = None
        self._timer_handle: TimerHandle | None = None
        self._feedback_handle: TimerHandle | None = None
        self._feedback: Feedback | None = None
        self._input_enabled = False

        self._record: SessionRecord | None = None
        self._is_new_best: bool | None = None
        self._streak_update: StreakUpdate | None = None

        self._stats = HomeStats()
        self._theme = Theme.SYSTEM

    @property
    def screen(self) -> Screen:
        return self._screen

    @property
    def exit_modal_open(self) -> bool:
        return self._exit_modal_open

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def timer(self) -> DrillTimer | None:
        return self._timer

    @property
    def input_enabled(self) -> bool:
        return self._input_enabled

    @property
    def record(self) -> SessionRecord | None:
        return self._record

    @property
    def is_new_best(self) -> bool | None:
        return self._is_new_best

    @property
    def streak_update(self) -> StreakUpdate | None:
        return self._streak_update

    @property
    def stats(self) -> HomeStats:
        return self._stats

    @property
    def theme(self) -> Theme:
        return self._theme

    @property
    def preset(self) -> DrillPreset:
        return self._preset

    # -- Transitions --------------------------------------------------------
    def start(self) -> None:
        """HOME or RESULTS (retry) -> COUNTDOWN."""

        if self._screen not in (Screen.HOME, Screen.RESULTS):
            return
        self._record = None
        self._is_new_best = None
        self._streak_update = None
        self._screen = Screen.COUNTDOWN
        self._countdown.start()

    def skip_countdown(self) -> None:
        if self._screen is not Screen.COUNTDOWN:
            return
        self._countdown.skip()

    def submit_answer(self, raw: str) -> None:
        if not self._accepting_input():
            return
        assert self._session is not None
        problem = self._session.current_problem
        assert problem is not None

        is_correct = validate_answer(raw, problem.correct_answer)
        result = AnswerResult(
            problem_id=problem.id,
            user_answer=raw.strip() or None,
            is_correct=is_correct,
            correct_answer=problem.correct_answer,
        )
        outcome = self._session.record(result, self._preset.scoring)

        if outcome is Outcome.SKIPPED:
            self._sound.play(SoundEvent.SKIP)
            self._deal_next_problem()
            return

        self._sound.play(SoundEvent.CORRECT if outcome is Outcome.CORRECT else SoundEvent.INCORRECT)
        self._feedback = Feedback(is_correct=outcome is Outcome.CORRECT, correct_answer=problem.correct_answer)
        self._input_enabled = False
        self._cancel_feedback()
        self._feedback_handle = self._scheduler.call_later(self._feedback_ms, self._after_feedback)

    def skip_problem(self) -> None:
        if not self._accepting_input():
            return
        assert self._session is not None
        problem = self._session.current_problem
        assert problem is not None

        self._session.record(
            AnswerResult(
                problem_id=problem.id,
                user_answer=None,
                is_correct=None,
                correct_answer=problem.correct_answer,
            ),
            self._preset.scoring,
        )
        self._sound.play(SoundEvent.SKIP)
        self._deal_next_problem()

    def request_exit(self) -> None:
        if self._screen is Screen.DRILL:
            self._exit_modal_open = True

    def cancel_exit(self) -> None:
        self._exit_modal_open = False

    def confirm_exit(self) -> None:
        if self._screen is not Screen.DRILL or not self._exit_modal_open:
            return
        self._stop_timer()
        self._cancel_feedback()
        answered = 0 if self._session is None else len(self._session.results)
        logger.info("drill abandoned after %d problems; nothing saved", answered)
        self._session = None
        self._feedback = None
        self._input_enabled = False
        self._exit_modal_open = False
        self._screen = Screen.HOME
        self.refresh_stats()

    def go_home(self) -> None:
        if self._screen is not Screen.RESULTS:
            return
        self._screen = Screen.HOME
        self.refresh_stats()

    # -- Preferences and stats ---------------------------------------------
    def load_preferences(self) -> None:
        self._jobs.submit(self._progress.get_theme(), label="get_theme", on_result=self._set_theme)
        self._jobs.submit(
            self._progress.get_sound_enabled(),
            label="get_sound_enabled",
            on_result=self._set_sound_enabled,
        )

    def cycle_theme(self) -> Theme:
        self._theme = self._theme.next()
        self._jobs.submit(self._progress.set_theme(self._theme), label="set_theme")
        return self._theme

    def toggle_sound(self) -> bool:
        self._sound.enabled = not self._sound.enabled
        self._jobs.submit(self._progress.set_sound_enabled(self._sound.enabled), label="set_sound_enabled")
        return self._sound.enabled

    def refresh_stats(self) -> None:
        p = self._progress
        self._jobs.submit(p.get_best_score(), label="get_best_score", on_result=self._on_best_score)
        self._jobs.submit(p.get_last_score(), label="get_last_score", on_result=self._on_last_score)
        self._jobs.submit(p.get_total_drills(), label="get_total_drills", on_result=self._on_total_drills)
        self._jobs.submit(p.get_streak_info(), label="get_streak_info", on_result=self._on_streak_info)
        self._jobs.submit(p.get_history(), label="get_history", on_result=self._on_history)

    def snapshot(self) -> DrillSnapshot:
        session = self._session
        problem = None if session is None else session.current_problem
        timer = self._timer
        remaining = self._preset.total_time_ms if session is None else session.time_remaining_ms
        return DrillSnapshot(
            screen=self._screen,
            exit_modal_open=self._exit_modal_open,
            countdown_value=self._countdown_value if self._screen is Screen.COUNTDOWN else None,
            problem_text="" if problem is None else format_problem(problem),
            input_enabled=self._input_enabled,
            feedback=self._feedback,
            score=0 if session is None else session.score,
            correct_count=0 if session is None else session.correct_count,
            incorrect_count=0 if session is None else session.incorrect_count,
            skipped_count=0 if session is None else session.skipped_count,
            answered=0 if session is None else len(session.results),
            time_remaining_ms=remaining,
            time_text=format_clock(remaining),
            timer_level=TimerLevel.NORMAL if timer is None else timer.level,
            record=self._record,
            is_new_best=self._is_new_best,
            streak_update=self._streak_update,
            stats=self._stats,
            theme=self._theme,
            sound_enabled=self._sound.enabled,
        )

    # -- Internals ---------------------------------------------------------
    def _accepting_input(self) -> bool:
        return (
            self._screen is Screen.DRILL
            and self._input_enabled
            and not self._exit_modal_open
            and self._session is not None
            and self._session.current_problem is not None
        )

    def _on_countdown_step(self, value: int | str) -> None:
        self._countdown_value = value

    def _start_drill(self) -> None:
        if self._screen is not Screen.COUNTDOWN:
            return
        self._stop_timer()
        self._cancel_feedback()

        total_ms = self._preset.total_time_ms
        self._session = Session(time_remaining_ms=total_ms)
        self._feedback = None
        self._exit_modal_open = False
        self._screen = Screen.DRILL
        self._deal_next_problem()

        self._timer = DrillTimer(total_ms, tick_ms=self._tick_ms)
        self._timer_handle = self._scheduler.call_every(self._tick_ms, self._on_timer_tick)

    def _deal_next_problem(self) -> None:
        assert self._session is not None
        self._session.current_problem = self._generator.next_problem()
        self._feedback = None
        self._input_enabled = True

    def _after_feedback(self) -> None:
        self._feedback_handle = None
        if self._screen is not Screen.DRILL or self._session is None:
            return
        self._deal_next_problem()

    def _on_timer_tick(self) -> None:
        timer = self._timer
        session = self._session
        if timer is None or session is None:
            return
        events = timer.tick()
        session.time_remaining_ms = timer.remaining_ms
        for event in events:
            if event is TimerEvent.LOW:
                self._sound.play(SoundEvent.LOW_TIME)
            elif event is TimerEvent.EXPIRED:
                self._finish_drill()

    def _finish_drill(self) -> None:
        session = self._session
        timer = self._timer
        assert session is not None and timer is not None

        self._stop_timer()
        self._cancel_feedback()
        self._input_enabled = False
        self._exit_modal_open = False
        self._sound.play(SoundEvent.COMPLETE)

        record = summarize_session(
            score=session.score,
            correct=session.correct_count,
            incorrect=session.incorrect_count,
            skipped=session.skipped_count,
            elapsed_s=timer.elapsed_ms / 1000.0,
            benchmarks=self._preset.benchmarks,
            date_iso=self._calendar.now_iso(),
        )
        self._record = record
        self._screen = Screen.RESULTS
        logger.info(
            "drill complete: score=%d correct=%d incorrect=%d skipped=%d level=%s",
            record.score,
            record.correct_count,
            record.incorrect_count,
            record.skipped_count,
            record.benchmark_level.value,
        )

        p = self._progress
        self._jobs.submit(
            p.set_best_score(record.score),
            label="set_best_score",
            on_result=lambda is_new: self._on_new_best(record, is_new),
        )
        self._jobs.submit(p.set_last_score(record), label="set_last_score")
        self._jobs.submit(p.add_to_history(record), label="add_to_history")
        self._jobs.submit(p.increment_total_drills(), label="increment_total_drills")
        self._jobs.submit(
            p.update_streak(),
            label="update_streak",
            on_result=lambda update: self._on_streak_update(record, update),
        )

    def _stop_timer(self) -> None:
        if self._timer_handle is not None:
            self._timer_handle.cancel()
            self._timer_handle = None
        if self._timer is not None:
            self._timer.stop()

    def _cancel_feedback(self) -> None:
        if self._feedback_handle is not None:
            self._feedback_handle.cancel()
            self._feedback_handle = None

    # -- Late job results ----------------------------------------------------
    def _set_theme(self, theme: Theme) -> None:
        self._theme = theme

    def _set_sound_enabled(self, enabled: bool) -> None:
        self._sound.enabled = bool(enabled)

    def _on_new_best(self, record: SessionRecord, is_new: bool) -> None:
        # Ignore answers that arrive after another drill has started.
        if self._record is record:
            self._is_new_best = bool(is_new)

    def _on_streak_update(self, record: SessionRecord, update: StreakUpdate) -> None:
        if self._record is record:
            self._streak_update = update

    def _on_best_score(self, best: int) -> None:
        self._stats = replace(self._stats, best_score=best)

    def _on_last_score(self, last: SessionRecord | None) -> None:
        self._stats = replace(self._stats, last_score=last)

    def _on_total_drills(self, total: int) -> None:
        self._stats = replace(self._stats, total_drills=total)

    def _on_streak_info(self, info: StreakInfo) -> None:
        self._stats = replace(
            self._stats,
            current_streak=info.current_streak,
            longest_streak=info.longest_streak,
            streak_active=info.is_active,
        )

    def _on_history(self, history: list[SessionRecord]) -> None:
        self._stats = replace(self._stats, history=tuple(history))
