from __future__ import annotations

import math

CHARS_PER_WORD = 5


def round_half_up(x: float) -> int:
    # Halves round away from zero for the non-negative values shown on screen.
    return int(math.floor(x + 0.5))


def percent(part: int, whole: int, *, empty: int) -> int:
    """Integer percentage of ``part / whole``; ``empty`` when ``whole`` is 0."""

    if whole <= 0:
        return empty
    return round_half_up(part * 100.0 / whole)


def words_per_minute(chars: int, elapsed_s: float) -> int:
    if elapsed_s <= 0.0 or not math.isfinite(elapsed_s):
        return 0
    minutes = elapsed_s / 60.0
    return round_half_up((chars / CHARS_PER_WORD) / minutes)


def format_elapsed(seconds: float) -> str:
    whole = max(0, int(seconds))
    return f"{whole // 60:02d}:{whole % 60:02d}"
