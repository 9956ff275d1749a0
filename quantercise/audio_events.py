from __future__ import annotations

from enum import Enum
from typing import Protocol


class SoundEvent(str, Enum):
    COUNTDOWN = "countdown"
    GO = "go"
    CORRECT = "correct"
    INCORRECT = "incorrect"
    SKIP = "skip"
    COMPLETE = "complete"
    LOW_TIME = "low_time"


class SoundPlayer(Protocol):
    """Audio collaborator consumed by the session; nothing is returned."""

    enabled: bool

    def play(self, event: SoundEvent) -> None:
        ...


class NullSoundPlayer:
    """Silent player used headlessly and when audio is disabled."""

    def __init__(self) -> None:
        self.enabled = True

    def play(self, event: SoundEvent) -> None:
        return None
