from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol

from .metrics import format_elapsed, words_per_minute


class Clock(Protocol):
    """Monotonic clock abstraction.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


@dataclass(frozen=True, slots=True)
class ClockTick:
    generation: int
    elapsed_s: float
    elapsed_text: str
    wpm: int


class SessionClock:
    """Fixed-interval ticker armed for the lifetime of one typing session.

    The clock never reads or writes typing state. Each ``arm`` starts a new
    generation; ticks from an older generation are stale and must be dropped
    by whoever consumes them.
    """

    def __init__(self, clock: Clock, *, interval_s: float = 0.5) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._clock = clock
        self._interval_s = float(interval_s)
        self._generation = 0
        self._started_at_s: float | None = None
        self._next_tick_s: float | None = None

    @property
    def armed(self) -> bool:
        return self._started_at_s is not None

    @property
    def generation(self) -> int:
        return self._generation

    def arm(self, started_at_s: float) -> None:
        # A pending tick from the previous session must never fire after re-arming.
        self._generation += 1
        self._started_at_s = float(started_at_s)
        self._next_tick_s = self._started_at_s + self._interval_s

    def disarm(self) -> None:
        self._generation += 1
        self._started_at_s = None
        self._next_tick_s = None

    def poll(self, *, chars_typed: int) -> ClockTick | None:
        """Return a tick if one is due, else None.

        ``chars_typed`` is the cursor position at poll time; it is only read.

        Missed intervals collapse into a single tick; the schedule then
        resumes from the current time.
        """

        if self._started_at_s is None or self._next_tick_s is None:
            return None
        now = self._clock.now()
        if now < self._next_tick_s:
            return None

        missed = int((now - self._next_tick_s) // self._interval_s)
        self._next_tick_s += (missed + 1) * self._interval_s
        elapsed = max(0.0, now - self._started_at_s)
        return ClockTick(
            generation=self._generation,
            elapsed_s=elapsed,
            elapsed_text=format_elapsed(elapsed),
            wpm=words_per_minute(chars_typed, elapsed),
        )
