"""Quick Drill preset and the fixed timing constants around it.

Only one preset exists. Everything that varies per preset (time limit,
operations, number ranges, point values, benchmark thresholds) lives on the
frozen ``DrillPreset`` so tests can derive narrowed copies with
``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Operation(str, Enum):
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"

    @property
    def symbol(self) -> str:
        return _OPERATION_SYMBOLS[self]


_OPERATION_SYMBOLS = {
    Operation.ADD: "+",
    Operation.SUBTRACT: "−",
    Operation.MULTIPLY: "×",
    Operation.DIVIDE: "÷",
}


class BenchmarkLevel(str, Enum):
    BELOW_PASSING = "below_passing"
    PASSING = "passing"
    GOOD = "good"
    EXCELLENT = "excellent"


@dataclass(frozen=True, slots=True)
class IntegerRange:
    min: int = 2
    max: int = 99

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ValueError("range min must be <= max")


@dataclass(frozen=True, slots=True)
class DivisionBounds:
    max_dividend: int = 144
    max_divisor: int = 12

    def __post_init__(self) -> None:
        if self.max_divisor < 2:
            raise ValueError("max_divisor must be >= 2")
        if self.max_dividend < 1:
            raise ValueError("max_dividend must be >= 1")


@dataclass(frozen=True, slots=True)
class NumberRanges:
    integers: IntegerRange = field(default_factory=IntegerRange)
    division: DivisionBounds = field(default_factory=DivisionBounds)


@dataclass(frozen=True, slots=True)
class ScoringRule:
    correct_points: int = 1
    incorrect_points: int = 0
    skipped_points: int = 0


@dataclass(frozen=True, slots=True)
class BenchmarkThresholds:
    passing: int = 40
    good: int = 55
    excellent: int = 70


@dataclass(frozen=True, slots=True)
class DrillPreset:
    preset_id: str
    name: str
    description: str
    time_limit_s: int
    operations: tuple[Operation, ...]
    ranges: NumberRanges = field(default_factory=NumberRanges)
    scoring: ScoringRule = field(default_factory=ScoringRule)
    benchmarks: BenchmarkThresholds = field(default_factory=BenchmarkThresholds)

    def __post_init__(self) -> None:
        if self.time_limit_s <= 0:
            raise ValueError("time_limit_s must be > 0")
        if not self.operations:
            raise ValueError("operations must not be empty")

    @property
    def total_time_ms(self) -> int:
        return int(self.time_limit_s) * 1000


QUICK_DRILL = DrillPreset(
    preset_id="quick",
    name="Quick Drill",
    description=(
        "Just two minutes of pure arithmetic. Only (+, −, ×, ÷) and "
        "double digit numbers. No penalties."
    ),
    time_limit_s=120,
    operations=(Operation.ADD, Operation.SUBTRACT, Operation.MULTIPLY, Operation.DIVIDE),
)

# Multiplication's first operand is always a times-table factor.
TIMES_TABLE = IntegerRange(2, 12)

TIMER_TICK_MS = 100
LOW_TIME_THRESHOLD = 0.25
CRITICAL_TIME_THRESHOLD = 0.10

COUNTDOWN_SEQUENCE: tuple[int | str, ...] = (3, 2, 1, "GO")
COUNTDOWN_TICK_MS = 700
COUNTDOWN_GO_MS = 500

FEEDBACK_DISPLAY_MS = 600

HISTORY_LIMIT = 20
