from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .presets import BenchmarkLevel, BenchmarkThresholds, ScoringRule


class Outcome(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    SKIPPED = "skipped"

    @classmethod
    def from_validation(cls, is_correct: bool | None) -> "Outcome":
        if is_correct is None:
            return cls.SKIPPED
        return cls.CORRECT if is_correct else cls.INCORRECT


@dataclass(frozen=True, slots=True)
class AnswerResult:
    problem_id: str
    user_answer: str | None
    is_correct: bool | None  # None = skipped, never "wrong"
    correct_answer: int

    @property
    def outcome(self) -> Outcome:
        return Outcome.from_validation(self.is_correct)


@dataclass(frozen=True, slots=True)
class SessionRecord:
    """Persisted summary of one completed drill."""

    date: str
    score: int
    correct_count: int
    incorrect_count: int
    skipped_count: int
    qpm: float
    accuracy_percent: int
    benchmark_level: BenchmarkLevel

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "score": self.score,
            "correctCount": self.correct_count,
            "incorrectCount": self.incorrect_count,
            "skippedCount": self.skipped_count,
            "qpm": self.qpm,
            "accuracyPercent": self.accuracy_percent,
            "benchmarkLevel": self.benchmark_level.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionRecord":
        return cls(
            date=str(data.get("date", "")),
            score=int(data.get("score", 0)),
            correct_count=int(data.get("correctCount", 0)),
            incorrect_count=int(data.get("incorrectCount", 0)),
            skipped_count=int(data.get("skippedCount", 0)),
            qpm=float(data.get("qpm", 0.0)),
            accuracy_percent=int(data.get("accuracyPercent", 0)),
            benchmark_level=BenchmarkLevel(data.get("benchmarkLevel", BenchmarkLevel.BELOW_PASSING.value)),
        )


def points_for(outcome: Outcome, scoring: ScoringRule) -> int:
    if outcome is Outcome.CORRECT:
        return scoring.correct_points
    if outcome is Outcome.INCORRECT:
        return scoring.incorrect_points
    return scoring.skipped_points


def score_from_counts(correct: int, incorrect: int, skipped: int, scoring: ScoringRule) -> int:
    return (
        correct * scoring.correct_points
        + incorrect * scoring.incorrect_points
        + skipped * scoring.skipped_points
    )


def classify_benchmark(score: int, thresholds: BenchmarkThresholds) -> BenchmarkLevel:
    if score >= thresholds.excellent:
        return BenchmarkLevel.EXCELLENT
    if score >= thresholds.good:
        return BenchmarkLevel.GOOD
    if score >= thresholds.passing:
        return BenchmarkLevel.PASSING
    return BenchmarkLevel.BELOW_PASSING


_BENCHMARK_TEXT = {
    BenchmarkLevel.EXCELLENT: "Excellent!",
    BenchmarkLevel.GOOD: "Good",
    BenchmarkLevel.PASSING: "Passing",
    BenchmarkLevel.BELOW_PASSING: "Keep Practicing",
}


def benchmark_text(level: BenchmarkLevel) -> str:
    return _BENCHMARK_TEXT[level]


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def compute_qpm(correct: int, elapsed_s: float) -> float:
    """Correct answers per minute, to one decimal place."""

    if elapsed_s <= 0:
        return 0.0
    return round_half_up(correct / (elapsed_s / 60.0) * 10.0) / 10.0


def compute_accuracy(correct: int, incorrect: int) -> int:
    # Skipped problems are not attempts for accuracy purposes.
    answered = correct + incorrect
    if answered == 0:
        return 0
    return round_half_up(100.0 * correct / answered)


def summarize_session(
    *,
    score: int,
    correct: int,
    incorrect: int,
    skipped: int,
    elapsed_s: float,
    benchmarks: BenchmarkThresholds,
    date_iso: str,
) -> SessionRecord:
    return SessionRecord(
        date=date_iso,
        score=score,
        correct_count=correct,
        incorrect_count=incorrect,
        skipped_count=skipped,
        qpm=compute_qpm(correct, elapsed_s),
        accuracy_percent=compute_accuracy(correct, incorrect),
        benchmark_level=classify_benchmark(score, benchmarks),
    )
