"""Pygame UI shell for Quantercise Quick Drill.

Everything deterministic (timing, scoring, RNG, streaks, session state) lives
in the core modules; this shell only turns key presses into controller calls,
advances the scheduler by real elapsed time, drains persistence jobs and
draws the current ``DrillSnapshot``.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .audio import PygameSoundPlayer
from .audio_events import NullSoundPlayer, SoundPlayer
from .clock import RealClock, SystemCalendar
from .config import AppConfig
from .drill_timer import TimerLevel
from .jobs import BackgroundJobs
from .persistence import ProgressStore, Theme
from .scheduler import Scheduler
from .scoring import benchmark_text
from .session import DrillSnapshot, Screen, SessionController
from .storage import open_store

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60
MAX_INPUT_LEN = 12
HOME_HISTORY_ROWS = 5


class View(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class Palette:
    bg: tuple[int, int, int]
    panel: tuple[int, int, int]
    border: tuple[int, int, int]
    text: tuple[int, int, int]
    muted: tuple[int, int, int]
    accent: tuple[int, int, int]
    good: tuple[int, int, int]
    warn: tuple[int, int, int]
    bad: tuple[int, int, int]


LIGHT_PALETTE = Palette(
    bg=(238, 242, 248),
    panel=(255, 255, 255),
    border=(120, 132, 160),
    text=(20, 26, 44),
    muted=(96, 106, 130),
    accent=(40, 88, 200),
    good=(24, 140, 72),
    warn=(204, 132, 0),
    bad=(200, 40, 48),
)

DARK_PALETTE = Palette(
    bg=(3, 9, 78),
    panel=(8, 18, 104),
    border=(226, 236, 255),
    text=(238, 245, 255),
    muted=(186, 200, 224),
    accent=(120, 170, 255),
    good=(90, 220, 140),
    warn=(255, 196, 64),
    bad=(255, 96, 96),
)


def palette_for(theme: Theme) -> Palette:
    # "system" has no OS query here; it follows the dark palette.
    return LIGHT_PALETTE if theme is Theme.LIGHT else DARK_PALETTE


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._views: list[View] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, view: View) -> None:
        self._views.append(view)

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._views:
            return
        self._views[-1].handle_event(event)

    def render(self) -> None:
        if not self._views:
            return
        self._views[-1].render(self._surface)


class DrillView:
    def __init__(self, app: App, controller: SessionController) -> None:
        self._app = app
        self._controller = controller
        self._input = ""

        self._small_font = pygame.font.Font(None, 24)
        self._title_font = pygame.font.Font(None, 52)
        self._problem_font = pygame.font.Font(None, 112)
        self._countdown_font = pygame.font.Font(None, 160)
        self._input_font = pygame.font.Font(None, 58)

    @property
    def input_text(self) -> str:
        return self._input

    @property
    def app_font(self) -> pygame.font.Font:
        return self._app.font

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        snap = self._controller.snapshot()
        key = event.key

        if snap.screen is Screen.HOME:
            self._handle_home_key(key)
        elif snap.screen is Screen.COUNTDOWN:
            if key in (pygame.K_SPACE, pygame.K_RETURN, pygame.K_KP_ENTER):
                self._controller.skip_countdown()
        elif snap.screen is Screen.DRILL:
            self._handle_drill_key(event, snap)
        elif snap.screen is Screen.RESULTS:
            self._handle_results_key(key)

    def _handle_home_key(self, key: int) -> None:
        if key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._input = ""
            self._controller.start()
        elif key == pygame.K_t:
            self._controller.cycle_theme()
        elif key == pygame.K_m:
            self._controller.toggle_sound()
        elif key == pygame.K_ESCAPE:
            self._app.quit()

    def _handle_drill_key(self, event: pygame.event.Event, snap: DrillSnapshot) -> None:
        key = event.key
        if snap.exit_modal_open:
            if key in (pygame.K_y, pygame.K_RETURN, pygame.K_KP_ENTER):
                self._input = ""
                self._controller.confirm_exit()
            elif key in (pygame.K_n, pygame.K_ESCAPE):
                self._controller.cancel_exit()
            return

        if key == pygame.K_ESCAPE:
            self._controller.request_exit()
            return
        if key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if snap.input_enabled:
                raw = self._input
                self._input = ""
                self._controller.submit_answer(raw)
            return
        if key == pygame.K_TAB:
            if snap.input_enabled:
                self._input = ""
                self._controller.skip_problem()
            return
        if key == pygame.K_BACKSPACE:
            self._input = self._input[:-1]
            return

        ch = event.unicode
        if ch and (ch.isdigit() or ch in "-.") and len(self._input) < MAX_INPUT_LEN:
            self._input += ch

    def _handle_results_key(self, key: int) -> None:
        if key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_r):
            self._input = ""
            self._controller.start()
        elif key in (pygame.K_ESCAPE, pygame.K_h):
            self._controller.go_home()
        elif key == pygame.K_m:
            self._controller.toggle_sound()

    # -- Rendering ---------------------------------------------------------
    def render(self, surface: pygame.Surface) -> None:
        snap = self._controller.snapshot()
        pal = palette_for(snap.theme)
        surface.fill(pal.bg)

        w, h = surface.get_size()
        margin = max(10, min(26, w // 34))
        frame = pygame.Rect(margin, margin, max(260, w - margin * 2), max(220, h - margin * 2))
        pygame.draw.rect(surface, pal.panel, frame)
        pygame.draw.rect(surface, pal.border, frame, 2)

        if snap.screen is Screen.HOME:
            self._render_home(surface, frame, snap, pal)
        elif snap.screen is Screen.COUNTDOWN:
            self._render_countdown(surface, frame, snap, pal)
        elif snap.screen is Screen.DRILL:
            self._render_drill(surface, frame, snap, pal)
            if snap.exit_modal_open:
                self._render_exit_modal(surface, frame, pal)
        else:
            self._render_results(surface, frame, snap, pal)

    def _blit_center(
        self,
        surface: pygame.Surface,
        font: pygame.font.Font,
        text: str,
        color: tuple[int, int, int],
        center: tuple[int, int],
    ) -> None:
        img = font.render(text, True, color)
        surface.blit(img, img.get_rect(center=center))

    def _render_home(self, surface: pygame.Surface, frame: pygame.Rect, snap: DrillSnapshot, pal: Palette) -> None:
        stats = snap.stats
        preset = self._controller.preset
        self._blit_center(surface, self._title_font, "Quantercise", pal.text, (frame.centerx, frame.y + 50))
        self._blit_center(
            surface,
            self._small_font,
            f"{preset.name}: {preset.description}",
            pal.muted,
            (frame.centerx, frame.y + 90),
        )

        streak_color = pal.good if stats.streak_active else pal.muted
        last = "-" if stats.last_score is None else str(stats.last_score.score)
        lines = (
            (f"Best score: {stats.best_score}", pal.text),
            (f"Last score: {last}", pal.text),
            (f"Drills completed: {stats.total_drills}", pal.text),
            (f"Streak: {stats.current_streak} day(s)  (longest {stats.longest_streak})", streak_color),
        )
        y = frame.y + 130
        for text, color in lines:
            img = self.app_font.render(text, True, color)
            surface.blit(img, (frame.x + 40, y))
            y += 36

        y += 10
        header = self._small_font.render("Recent drills", True, pal.muted)
        surface.blit(header, (frame.x + 40, y))
        y += 26
        for record in stats.history[:HOME_HISTORY_ROWS]:
            row = f"{record.date[:10]}   score {record.score}   {record.qpm:.1f} qpm   {record.accuracy_percent}%"
            img = self._small_font.render(row, True, pal.text)
            surface.blit(img, (frame.x + 52, y))
            y += 22

        sound = "on" if snap.sound_enabled else "off"
        footer = f"Enter: Start  |  T: Theme ({snap.theme.value})  |  M: Sound ({sound})  |  Esc: Quit"
        self._blit_center(surface, self._small_font, footer, pal.muted, (frame.centerx, frame.bottom - 20))

    def _render_countdown(
        self, surface: pygame.Surface, frame: pygame.Rect, snap: DrillSnapshot, pal: Palette
    ) -> None:
        value = "" if snap.countdown_value is None else str(snap.countdown_value)
        color = pal.good if value == "GO" else pal.accent
        self._blit_center(surface, self._countdown_font, value, color, frame.center)
        self._blit_center(
            surface, self._small_font, "Space: Skip countdown", pal.muted, (frame.centerx, frame.bottom - 20)
        )

    def _render_drill(self, surface: pygame.Surface, frame: pygame.Rect, snap: DrillSnapshot, pal: Palette) -> None:
        timer_color = {
            TimerLevel.NORMAL: pal.text,
            TimerLevel.LOW: pal.warn,
            TimerLevel.CRITICAL: pal.bad,
        }[snap.timer_level]
        clock_img = self._title_font.render(snap.time_text, True, timer_color)
        surface.blit(clock_img, (frame.x + 24, frame.y + 18))

        score_img = self._title_font.render(f"Score {snap.score}", True, pal.text)
        surface.blit(score_img, score_img.get_rect(topright=(frame.right - 24, frame.y + 18)))

        bar = pygame.Rect(frame.x + 24, frame.y + 70, frame.w - 48, 8)
        pygame.draw.rect(surface, pal.border, bar, 1)
        total = max(1, self._controller.preset.total_time_ms)
        fill_w = int((bar.w - 2) * max(0, snap.time_remaining_ms) / total)
        pygame.draw.rect(surface, timer_color, pygame.Rect(bar.x + 1, bar.y + 1, fill_w, bar.h - 2))

        self._blit_center(surface, self._problem_font, snap.problem_text, pal.text, (frame.centerx, frame.centery - 40))

        box = pygame.Rect(0, 0, min(360, frame.w - 80), 64)
        box.center = (frame.centerx, frame.centery + 60)
        pygame.draw.rect(surface, pal.bg, box)
        pygame.draw.rect(surface, pal.accent if snap.input_enabled else pal.border, box, 2)
        self._blit_center(surface, self._input_font, self._input, pal.text, box.center)

        if snap.feedback is not None:
            if snap.feedback.is_correct:
                text, color = "Correct!", pal.good
            else:
                text, color = f"Answer: {snap.feedback.correct_answer}", pal.bad
            self._blit_center(surface, self.app_font, text, color, (frame.centerx, box.bottom + 30))

        counts = f"Correct {snap.correct_count}   Wrong {snap.incorrect_count}   Skipped {snap.skipped_count}"
        self._blit_center(surface, self._small_font, counts, pal.muted, (frame.centerx, frame.bottom - 44))
        footer = "Enter: Submit  |  Tab: Skip  |  Esc: Exit"
        self._blit_center(surface, self._small_font, footer, pal.muted, (frame.centerx, frame.bottom - 20))

    def _render_exit_modal(self, surface: pygame.Surface, frame: pygame.Rect, pal: Palette) -> None:
        shade = pygame.Surface(surface.get_size(), pygame.SRCALPHA)
        shade.fill((0, 0, 0, 150))
        surface.blit(shade, (0, 0))

        box = pygame.Rect(0, 0, min(480, frame.w - 40), 150)
        box.center = frame.center
        pygame.draw.rect(surface, pal.panel, box)
        pygame.draw.rect(surface, pal.border, box, 2)
        self._blit_center(surface, self.app_font, "Exit drill? Progress will be lost.", pal.text, (box.centerx, box.y + 50))
        self._blit_center(surface, self._small_font, "Y: Exit   N/Esc: Keep going", pal.muted, (box.centerx, box.y + 105))

    def _render_results(
        self, surface: pygame.Surface, frame: pygame.Rect, snap: DrillSnapshot, pal: Palette
    ) -> None:
        record = snap.record
        if record is None:
            return
        self._blit_center(surface, self._title_font, "Drill complete", pal.text, (frame.centerx, frame.y + 50))
        self._blit_center(
            surface,
            self._problem_font,
            str(record.score),
            pal.accent,
            (frame.centerx, frame.y + 130),
        )
        self._blit_center(
            surface,
            self._title_font,
            benchmark_text(record.benchmark_level),
            pal.good if record.score >= self._controller.preset.benchmarks.passing else pal.warn,
            (frame.centerx, frame.y + 200),
        )

        if snap.is_new_best:
            self._blit_center(surface, self.app_font, "New best score!", pal.good, (frame.centerx, frame.y + 245))

        detail = (
            f"Correct {record.correct_count}   Wrong {record.incorrect_count}   "
            f"Skipped {record.skipped_count}   {record.qpm:.1f} qpm   {record.accuracy_percent}% accuracy"
        )
        self._blit_center(surface, self._small_font, detail, pal.text, (frame.centerx, frame.y + 290))

        if snap.streak_update is not None:
            streak = f"Streak: {snap.streak_update.current_streak} day(s)"
            if snap.streak_update.is_new_record:
                streak += "  (new record)"
            self._blit_center(surface, self._small_font, streak, pal.muted, (frame.centerx, frame.y + 320))

        footer = "Enter/R: Retry  |  Esc/H: Home  |  M: Sound"
        self._blit_center(surface, self._small_font, footer, pal.muted, (frame.centerx, frame.bottom - 20))


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    config = AppConfig.from_env()
    logging.basicConfig(level=config.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    pygame.init()
    pygame.display.set_caption("Quantercise Quick Drill")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)
    font = pygame.font.Font(None, 36)
    frame_clock = pygame.time.Clock()

    calendar = SystemCalendar()
    progress = ProgressStore(open_store(config), calendar)
    jobs = BackgroundJobs()
    scheduler = Scheduler()
    sound: SoundPlayer = PygameSoundPlayer() if config.audio_enabled else NullSoundPlayer()
    logger.info("store=%s path=%s audio=%s", config.store_backend.value, config.store_path, config.audio_enabled)

    controller = SessionController(
        scheduler=scheduler,
        progress=progress,
        jobs=jobs,
        sound=sound,
        calendar=calendar,
        seed=_new_seed(),
    )
    controller.load_preferences()
    controller.refresh_stats()

    app = App(surface=surface, font=font)
    app.push(DrillView(app, controller))

    real_clock = RealClock()
    last = real_clock.now()
    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            # Whole milliseconds only; the remainder carries into the next frame.
            elapsed_ms = int((real_clock.now() - last) * 1000.0)
            if elapsed_ms > 0:
                last += elapsed_ms / 1000.0
                scheduler.advance(elapsed_ms)

            jobs.drain()
            app.render()
            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            frame_clock.tick(TARGET_FPS)
    finally:
        jobs.close()
        pygame.quit()

    return 0
