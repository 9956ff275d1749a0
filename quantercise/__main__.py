"""Launch the quick drill window: ``python -m quantercise`` or ``quantercise``."""

from __future__ import annotations

from quantercise.app import run


def main() -> int:
    """Exit status is whatever the UI loop returns."""
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
