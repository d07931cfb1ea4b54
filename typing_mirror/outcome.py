from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from .clock import Clock
from .metrics import percent, words_per_minute
from .session import SessionState

DEFAULT_FAILURE_THRESHOLD = 6

FAILURE_MESSAGES: tuple[str, ...] = (
    "Try again. You can always find your self within.",
    "One must imagine Sisyphus happy. Keep going.",
    "The mirror looks back. Keep going.",
    "It takes time.",
)


class Classification(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True, slots=True)
class Outcome:
    wpm: int
    accuracy_percent: int
    total_mistakes: int
    elapsed_s: float
    classification: Classification
    message: str | None = None

    @property
    def passed(self) -> bool:
        return self.classification is Classification.SUCCESS


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)


class FailureMessagePicker:
    """Draws failure messages so the same one never shows twice in a row."""

    def __init__(self, messages: Sequence[str] = FAILURE_MESSAGES, *, rng: SeededRng) -> None:
        if not messages:
            raise ValueError("messages must not be empty")
        self._messages = tuple(messages)
        self._rng = rng
        self._last_idx: int | None = None

    def pick(self) -> str:
        n = len(self._messages)
        if n == 1 or self._last_idx is None:
            idx = self._rng.randint(0, n - 1)
        else:
            # Uniform over the n - 1 messages that differ from the last one.
            idx = self._rng.randint(0, n - 2)
            if idx >= self._last_idx:
                idx += 1
        self._last_idx = idx
        return self._messages[idx]


class OutcomeResolver:
    def __init__(
        self,
        *,
        clock: Clock,
        picker: FailureMessagePicker,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
    ) -> None:
        if failure_threshold < 0:
            raise ValueError("failure_threshold must be >= 0")
        self._clock = clock
        self._picker = picker
        self._failure_threshold = int(failure_threshold)

    @property
    def failure_threshold(self) -> int:
        return self._failure_threshold

    def resolve(self, state: SessionState) -> Outcome:
        """Final metrics for a completed passage."""

        if not state.complete:
            raise ValueError("outcome requested for an unfinished passage")

        elapsed = 0.0
        if state.started_at_s is not None:
            elapsed = max(0.0, self._clock.now() - state.started_at_s)

        length = state.passage_length
        mistakes = state.total_mistakes
        if mistakes > self._failure_threshold:
            classification = Classification.FAILURE
            message: str | None = self._picker.pick()
        else:
            classification = Classification.SUCCESS
            message = None

        return Outcome(
            wpm=words_per_minute(length, elapsed),
            accuracy_percent=percent(state.correct_count(), length, empty=100),
            total_mistakes=mistakes,
            elapsed_s=elapsed,
            classification=classification,
            message=message,
        )
