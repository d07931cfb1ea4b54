from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from .clock import Clock
from .corpus import Passage
from .metrics import percent
from .redaction_map import FeatureId, next_feature_to_hide

logger = logging.getLogger(__name__)


class CharState(StrEnum):
    PENDING = "pending"
    CORRECT = "correct"
    INCORRECT = "incorrect"


@dataclass(slots=True)
class SessionState:
    """Everything that changes while one passage is being typed.

    Only TypingEngine (and the escalation tracker it drives) writes to this.
    """

    passage: Passage
    char_states: list[CharState]
    cursor: int = 0
    mistakes: int = 0
    hidden_features: list[FeatureId] = field(default_factory=list)
    active: bool = False
    complete: bool = False
    started_at_s: float | None = None

    @classmethod
    def fresh(cls, passage: Passage) -> "SessionState":
        return cls(passage=passage, char_states=[CharState.PENDING] * len(passage.text))

    @property
    def passage_length(self) -> int:
        return len(self.passage.text)

    @property
    def total_mistakes(self) -> int:
        return self.mistakes

    def correct_count(self) -> int:
        return sum(1 for s in self.char_states if s is CharState.CORRECT)


@dataclass(frozen=True, slots=True)
class CommitResult:
    accepted: bool
    index: int = -1
    state: CharState = CharState.PENDING
    started: bool = False
    mismatch: bool = False
    revealed: FeatureId | None = None
    completed: bool = False


_REJECTED = CommitResult(accepted=False)


class MistakeEscalation:
    """Turns each mismatch into one more hidden facial feature."""

    def record_mismatch(self, state: SessionState) -> FeatureId | None:
        feature = next_feature_to_hide(state.hidden_features)
        if feature is None:
            return None
        state.hidden_features.append(feature)
        return feature


class TypingEngine:
    """Per-passage character matcher.

    - Strict single-character equality, no case folding or normalization.
    - Mistakes are permanent: retracting never undoes a count or a redaction.
    - Time is entirely via injected Clock.
    """

    def __init__(
        self,
        passage: Passage,
        *,
        clock: Clock,
        escalation: MistakeEscalation | None = None,
    ) -> None:
        self._clock = clock
        self._escalation = escalation or MistakeEscalation()
        self._state = SessionState.fresh(passage)

    @property
    def state(self) -> SessionState:
        return self._state

    def load_passage(self, passage: Passage) -> SessionState:
        # Nothing crosses over from the previous passage.
        self._state = SessionState.fresh(passage)
        return self._state

    def commit_character(self, ch: str) -> CommitResult:
        """Classify the character at the cursor. Returns a rejected result for no-ops."""

        st = self._state
        if len(ch) != 1:
            return _REJECTED
        if st.complete or st.cursor >= st.passage_length:
            return _REJECTED

        started = False
        if st.started_at_s is None:
            st.started_at_s = self._clock.now()
            st.active = True
            started = True

        index = st.cursor
        expected = st.passage.text[index]
        revealed: FeatureId | None = None
        if ch == expected:
            char_state = CharState.CORRECT
        else:
            char_state = CharState.INCORRECT
            st.mistakes += 1
            revealed = self._escalation.record_mismatch(st)
            logger.debug("Mismatch at %d: expected %r, got %r", index, expected, ch)

        st.char_states[index] = char_state
        st.cursor = index + 1

        completed = st.cursor == st.passage_length
        if completed:
            st.complete = True
            st.active = False

        return CommitResult(
            accepted=True,
            index=index,
            state=char_state,
            started=started,
            mismatch=char_state is CharState.INCORRECT,
            revealed=revealed,
            completed=completed,
        )

    def retract(self) -> bool:
        """Step the cursor back one position. Returns False at position 0."""

        st = self._state
        # A finished passage is final; its cursor stays at the end.
        if st.cursor == 0 or st.complete:
            return False
        st.cursor -= 1
        st.char_states[st.cursor] = CharState.PENDING
        return True

    def accuracy_percent(self) -> int:
        st = self._state
        correct = sum(1 for s in st.char_states[: st.cursor] if s is CharState.CORRECT)
        return percent(correct, st.cursor, empty=100)

    def progress_percent(self) -> int:
        st = self._state
        return percent(st.cursor, st.passage_length, empty=100)
