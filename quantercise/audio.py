"""Pygame audio adapter for drill cues.

This stays outside the deterministic core. Every cue is synthesized once, at
start-up, into a 16-bit PCM buffer in the mixer's format; ``play`` only hands
a prepared ``pygame.mixer.Sound`` to a channel. When the mixer cannot be
initialised the player stays silent instead of failing the drill.
"""

from __future__ import annotations

import logging
import math
from array import array

import pygame

from .audio_events import SoundEvent

logger = logging.getLogger(__name__)

NOTES = {
    "C4": 261.63,
    "D4": 293.66,
    "E4": 329.63,
    "G4": 392.0,
    "A4": 440.0,
    "C5": 523.25,
    "E5": 659.25,
    "G5": 783.99,
}

# (offset_s, frequency_hz, duration_s, gain) per voice.
_CUES: dict[SoundEvent, tuple[tuple[float, float, float, float], ...]] = {
    SoundEvent.COUNTDOWN: ((0.0, NOTES["G4"], 0.10, 0.40),),
    SoundEvent.GO: (
        (0.00, NOTES["C5"], 0.15, 0.50),
        (0.05, NOTES["E5"], 0.15, 0.50),
        (0.10, NOTES["G5"], 0.15, 0.50),
    ),
    SoundEvent.CORRECT: (
        (0.00, NOTES["E5"], 0.08, 0.35),
        (0.05, NOTES["G5"], 0.12, 0.35),
    ),
    SoundEvent.INCORRECT: ((0.0, NOTES["D4"], 0.15, 0.30),),
    SoundEvent.SKIP: (
        (0.00, NOTES["A4"], 0.06, 0.25),
        (0.04, NOTES["E4"], 0.08, 0.20),
    ),
    SoundEvent.COMPLETE: (
        (0.00, NOTES["C4"], 0.30, 0.40 / 3),
        (0.00, NOTES["E4"], 0.30, 0.40 / 3),
        (0.00, NOTES["G4"], 0.30, 0.40 / 3),
        (0.08, NOTES["E4"], 0.30, 0.45 / 3),
        (0.08, NOTES["G4"], 0.30, 0.45 / 3),
        (0.08, NOTES["C5"], 0.30, 0.45 / 3),
        (0.16, NOTES["G4"], 0.50, 0.50 / 3),
        (0.16, NOTES["C5"], 0.50, 0.50 / 3),
        (0.16, NOTES["E5"], 0.50, 0.50 / 3),
    ),
    SoundEvent.LOW_TIME: (
        (0.00, NOTES["A4"], 0.08, 0.35),
        (0.12, NOTES["A4"], 0.08, 0.35),
    ),
}


class PygameSoundPlayer:
    _sample_rate = 22050
    _amp = 32767

    def __init__(self, *, volume: float = 0.5) -> None:
        self.enabled = True
        self._volume = max(0.0, min(1.0, float(volume)))
        self._available = False
        self._sounds: dict[SoundEvent, pygame.mixer.Sound] = {}
        self._channel: pygame.mixer.Channel | None = None
        self._channels = 1

        try:
            if pygame.mixer.get_init() is None:
                pygame.mixer.init(frequency=self._sample_rate, size=-16, channels=1, buffer=512)
            # pygame.init() may already have opened the mixer in another format.
            frequency, _, channels = pygame.mixer.get_init()
            self._sample_rate = int(frequency)
            self._channels = max(1, int(channels))
            for event, voices in _CUES.items():
                pcm = self._render_cue_pcm(voices)
                self._sounds[event] = pygame.mixer.Sound(buffer=pcm.tobytes())
            self._channel = pygame.mixer.Channel(0)
            self._available = True
        except Exception:
            logger.warning("audio unavailable; drill cues will be silent", exc_info=True)
            self._available = False

    @property
    def available(self) -> bool:
        return self._available

    def play(self, event: SoundEvent) -> None:
        if not self.enabled or not self._available:
            return
        assert self._channel is not None
        sound = self._sounds.get(event)
        if sound is None:
            return
        self._channel.set_volume(self._volume)
        self._channel.play(sound)

    def stop(self) -> None:
        if self._channel is not None:
            self._channel.stop()

    def _render_cue_pcm(self, voices: tuple[tuple[float, float, float, float], ...]) -> array[int]:
        end_s = max(offset + duration for offset, _, duration, _ in voices)
        mix = [0.0] * max(1, int(self._sample_rate * end_s))
        for offset_s, frequency_hz, duration_s, gain in voices:
            start = int(self._sample_rate * offset_s)
            for idx, sample in enumerate(self._render_tone(frequency_hz, duration_s, gain=gain)):
                if start + idx < len(mix):
                    mix[start + idx] += sample
        pcm = array("h")
        for s in mix:
            value = int(max(-1.0, min(1.0, s)) * self._amp)
            pcm.extend([value] * self._channels)
        return pcm

    def _render_tone(self, frequency_hz: float, duration_s: float, *, gain: float) -> list[float]:
        sample_count = max(1, int(self._sample_rate * duration_s))
        fade_n = max(1, int(self._sample_rate * 0.008))
        out: list[float] = []
        for idx in range(sample_count):
            envelope = 1.0
            if idx < fade_n:
                envelope = idx / float(fade_n)
            tail = sample_count - idx - 1
            if tail < fade_n:
                envelope = min(envelope, tail / float(fade_n))
            phase = (2.0 * math.pi * float(frequency_hz) * idx) / float(self._sample_rate)
            out.append(math.sin(phase) * gain * max(0.0, envelope))
        return out
