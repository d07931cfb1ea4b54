from __future__ import annotations

from dataclasses import dataclass

import pytest

from typing_mirror.clock import SessionClock
from typing_mirror.metrics import format_elapsed, percent, round_half_up, words_per_minute


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def test_unarmed_clock_never_ticks() -> None:
    clock = FakeClock()
    sc = SessionClock(clock, interval_s=0.5)
    clock.advance(10.0)
    assert sc.armed is False
    assert sc.poll(chars_typed=10) is None


def test_ticks_once_per_interval_while_armed() -> None:
    clock = FakeClock()
    sc = SessionClock(clock, interval_s=0.5)
    sc.arm(clock.now())

    clock.advance(0.25)
    assert sc.poll(chars_typed=0) is None

    clock.advance(0.25)
    tick = sc.poll(chars_typed=5)
    assert tick is not None
    assert tick.elapsed_s == pytest.approx(0.5)
    assert tick.elapsed_text == "00:00"
    assert tick.generation == sc.generation
    assert sc.poll(chars_typed=5) is None


def test_missed_intervals_collapse_into_one_tick() -> None:
    clock = FakeClock()
    sc = SessionClock(clock, interval_s=0.5)
    sc.arm(0.0)

    clock.advance(2.0)
    assert sc.poll(chars_typed=0) is not None
    assert sc.poll(chars_typed=0) is None

    clock.advance(0.5)
    assert sc.poll(chars_typed=0) is not None


def test_tick_reports_words_per_minute_from_wall_clock() -> None:
    clock = FakeClock()
    sc = SessionClock(clock, interval_s=0.5)
    sc.arm(0.0)
    clock.advance(60.0)
    tick = sc.poll(chars_typed=50)
    assert tick is not None
    assert tick.wpm == 10
    assert tick.elapsed_text == "01:00"


def test_disarm_and_rearm_bump_generation() -> None:
    clock = FakeClock()
    sc = SessionClock(clock, interval_s=0.5)
    sc.arm(0.0)
    first = sc.generation

    sc.disarm()
    assert sc.armed is False
    assert sc.generation > first
    clock.advance(1.0)
    assert sc.poll(chars_typed=0) is None

    sc.arm(clock.now())
    assert sc.generation > first + 1


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        SessionClock(FakeClock(), interval_s=0.0)


def test_words_per_minute_guards_zero_elapsed() -> None:
    assert words_per_minute(25, 0.0) == 0
    assert words_per_minute(25, -1.0) == 0
    assert words_per_minute(0, 30.0) == 0
    assert words_per_minute(25, 30.0) == 10


def test_rounding_and_percent_helpers() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(66.6) == 67
    assert percent(2, 3, empty=100) == 67
    assert percent(0, 0, empty=100) == 100
    assert percent(1, 2, empty=0) == 50


def test_format_elapsed() -> None:
    assert format_elapsed(0) == "00:00"
    assert format_elapsed(75.9) == "01:15"
    assert format_elapsed(-3) == "00:00"
    assert format_elapsed(3600) == "60:00"
