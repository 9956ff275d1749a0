from __future__ import annotations

import re

ANSWER_TOLERANCE = 1e-4

# Leading real-number prefix, so "12abc" reads as 12 the same way a browser's
# parseFloat would.
_NUMBER_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_number(text: str) -> float | None:
    match = _NUMBER_PREFIX.match(text)
    if match is None:
        return None
    try:
        return float(match.group(0))
    except ValueError:
        return None


def validate_answer(raw: str, correct_answer: float) -> bool | None:
    """Classify typed input: None = skipped, False = wrong, True = correct."""

    trimmed = raw.strip()
    if not trimmed:
        return None

    parsed = parse_number(trimmed)
    if parsed is None:
        return False

    return abs(parsed - float(correct_answer)) < ANSWER_TOLERANCE
