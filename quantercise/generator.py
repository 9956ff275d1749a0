from __future__ import annotations

import random
from dataclasses import dataclass
from uuid import uuid4

from .presets import TIMES_TABLE, NumberRanges, Operation


@dataclass(frozen=True, slots=True)
class Problem:
    id: str
    operation: Operation
    operand1: int
    operand2: int
    correct_answer: int


def format_problem(problem: Problem) -> str:
    return f"{problem.operand1} {problem.operation.symbol} {problem.operand2} ="


def new_problem_id() -> str:
    # Correlates a problem with its AnswerResult; uniqueness is all that matters.
    return f"p-{uuid4().hex[:12]}"


def generate_problem(operation: Operation, ranges: NumberRanges, rng: random.Random) -> Problem:
    """Produce one problem for ``operation`` within ``ranges``."""

    lo, hi = ranges.integers.min, ranges.integers.max

    if operation is Operation.ADD:
        a = rng.randint(lo, hi)
        b = rng.randint(lo, hi)
        return Problem(new_problem_id(), operation, a, b, a + b)

    if operation is Operation.SUBTRACT:
        a = rng.randint(lo, hi)
        b = rng.randint(lo, hi)
        if a < b:
            a, b = b, a
        return Problem(new_problem_id(), operation, a, b, a - b)

    if operation is Operation.MULTIPLY:
        a = rng.randint(TIMES_TABLE.min, TIMES_TABLE.max)
        b = rng.randint(lo, hi)
        return Problem(new_problem_id(), operation, a, b, a * b)

    # Division is built backwards from divisor and quotient so the result is exact.
    bounds = ranges.division
    divisor = rng.randint(2, bounds.max_divisor)
    max_quotient = max(1, bounds.max_dividend // divisor)
    quotient = rng.randint(1, max_quotient)
    return Problem(new_problem_id(), operation, divisor * quotient, divisor, quotient)


class ProblemGenerator:
    """Picks an operation uniformly on every call; no memory of past problems."""

    def __init__(
        self,
        operations: tuple[Operation, ...],
        ranges: NumberRanges,
        *,
        seed: int | None = None,
    ) -> None:
        if not operations:
            raise ValueError("operations must not be empty")
        self._operations = tuple(operations)
        self._ranges = ranges
        self._rng = random.Random(seed)

    def next_problem(self) -> Problem:
        operation = self._rng.choice(self._operations)
        return generate_problem(operation, self._ranges, self._rng)
