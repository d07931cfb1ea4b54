"""Session controller: the single consumer of typing, clock and camera commands.

Producers (the pygame event loop, the session clock and the face-tracking
worker thread) only ever enqueue commands. ``SessionController.dispatch`` is
the one place session state changes, and only typing commands write typing
fields. Clock ticks and camera frames update display-only values.
"""

from __future__ import annotations

import logging
import queue
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

import numpy as np

from .clock import Clock, ClockTick, SessionClock
from .config import AppConfig
from .corpus import Passage, passage_at
from .metrics import format_elapsed
from .outcome import FailureMessagePicker, Outcome, OutcomeResolver, SeededRng
from .projector import RedactionRect, as_landmark_array, project_redactions
from .redaction_map import FeatureId
from .session import CharState, CommitResult, TypingEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TypeText:
    text: str


@dataclass(frozen=True, slots=True)
class Retract:
    pass


@dataclass(frozen=True, slots=True)
class Tick:
    tick: ClockTick


@dataclass(frozen=True, slots=True)
class FrameArrived:
    landmarks: np.ndarray
    image: np.ndarray | None = None  # RGB, (h, w, 3)


@dataclass(frozen=True, slots=True)
class FaceLost:
    image: np.ndarray | None = None


@dataclass(frozen=True, slots=True)
class RestartPassage:
    pass


@dataclass(frozen=True, slots=True)
class NextPassage:
    pass


Command = TypeText | Retract | Tick | FrameArrived | FaceLost | RestartPassage | NextPassage


class CommandBus:
    """Unbounded FIFO shared by all producers. ``put`` never blocks."""

    def __init__(self) -> None:
        self._q: queue.SimpleQueue[Command] = queue.SimpleQueue()

    def put(self, command: Command) -> None:
        self._q.put(command)

    def drain(self) -> list[Command]:
        out: list[Command] = []
        while True:
            try:
                out.append(self._q.get_nowait())
            except queue.Empty:
                return out


class FaceStatus(StrEnum):
    NO_CAMERA = "no_camera"
    DETECTED = "detected"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class CharView:
    char: str
    state: CharState
    is_cursor: bool


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """View model for the UI (pure data)."""

    chars: tuple[CharView, ...]
    author_line: str
    elapsed_text: str
    wpm: int
    accuracy_percent: int
    progress_percent: int
    mistakes: int
    hidden_features: tuple[FeatureId, ...]
    active: bool
    complete: bool
    face_status: FaceStatus
    outcome: Outcome | None


class SessionController:
    def __init__(
        self,
        corpus: Sequence[Passage],
        *,
        clock: Clock,
        config: AppConfig | None = None,
        seed: int = 0,
        bus: CommandBus | None = None,
    ) -> None:
        if not corpus:
            raise ValueError("corpus must not be empty")
        cfg = config or AppConfig()

        self._corpus = tuple(corpus)
        self._bus = bus or CommandBus()
        self._passage_idx = 0

        self._engine = TypingEngine(passage_at(self._corpus, 0), clock=clock)
        self._session_clock = SessionClock(clock, interval_s=cfg.tick_interval_s)
        self._resolver = OutcomeResolver(
            clock=clock,
            picker=FailureMessagePicker(rng=SeededRng(seed)),
            failure_threshold=cfg.failure_threshold,
        )

        self._outcome: Outcome | None = None
        self._elapsed_text = format_elapsed(0)
        self._wpm = 0

        # Camera side: replaced wholesale per frame, never merged.
        self._landmarks: np.ndarray | None = None
        self._image: np.ndarray | None = None
        self._face_status = FaceStatus.NO_CAMERA

    @property
    def bus(self) -> CommandBus:
        return self._bus

    @property
    def engine(self) -> TypingEngine:
        return self._engine

    @property
    def session_clock(self) -> SessionClock:
        return self._session_clock

    @property
    def passage_index(self) -> int:
        return self._passage_idx

    @property
    def passage(self) -> Passage:
        return self._engine.state.passage

    @property
    def outcome(self) -> Outcome | None:
        return self._outcome

    @property
    def latest_image(self) -> np.ndarray | None:
        return self._image

    @property
    def latest_landmarks(self) -> np.ndarray | None:
        return self._landmarks

    def pump(self) -> int:
        """Enqueue any due clock tick, then apply every queued command in order."""

        self.poll_clock()
        commands = self._bus.drain()
        for command in commands:
            self.dispatch(command)
        return len(commands)

    def poll_clock(self) -> None:
        tick = self._session_clock.poll(chars_typed=self._engine.state.cursor)
        if tick is not None:
            self._bus.put(Tick(tick))

    def dispatch(self, command: Command) -> None:
        match command:
            case TypeText(text=text):
                self._type_text(text)
            case Retract():
                self._engine.retract()
            case Tick(tick=tick):
                self._apply_tick(tick)
            case FrameArrived(landmarks=landmarks, image=image):
                self._image = image
                try:
                    self._landmarks = as_landmark_array(landmarks)
                except ValueError as exc:
                    # A malformed frame reads as no face; the rest of the batch still applies.
                    logger.warning("Dropped malformed landmark frame: %s", exc)
                    self._landmarks = None
                    self._face_status = FaceStatus.NOT_FOUND
                else:
                    self._face_status = FaceStatus.DETECTED
            case FaceLost(image=image):
                self._landmarks = None
                self._image = image
                self._face_status = FaceStatus.NOT_FOUND
            case RestartPassage():
                self.load_passage(self._passage_idx)
            case NextPassage():
                self.load_passage(self._passage_idx + 1)
            case _:
                raise TypeError(f"unknown command: {command!r}")

    def load_passage(self, index: int) -> None:
        self._session_clock.disarm()
        self._passage_idx = index % len(self._corpus)
        passage = passage_at(self._corpus, self._passage_idx)
        self._engine.load_passage(passage)
        self._outcome = None
        self._elapsed_text = format_elapsed(0)
        self._wpm = 0
        logger.info("Loaded passage %d (%d chars)", self._passage_idx, len(passage.text))

    def commit(self, ch: str) -> CommitResult:
        result = self._engine.commit_character(ch)
        if not result.accepted:
            return result

        st = self._engine.state
        if result.started:
            assert st.started_at_s is not None
            self._session_clock.arm(st.started_at_s)
        if result.revealed is not None:
            logger.debug("Mistake %d hides %s", st.mistakes, result.revealed.value)
        if result.completed:
            self._session_clock.disarm()
            self._outcome = self._resolver.resolve(st)
            self._elapsed_text = format_elapsed(self._outcome.elapsed_s)
            self._wpm = self._outcome.wpm
            logger.info(
                "Passage %d finished: %s, %d wpm, %d%% accuracy, %d mistakes",
                self._passage_idx,
                self._outcome.classification.value,
                self._outcome.wpm,
                self._outcome.accuracy_percent,
                self._outcome.total_mistakes,
            )
        return result

    def redactions(self, *, width: int, height: int, mirror: bool = False) -> list[RedactionRect]:
        return project_redactions(
            self._landmarks,
            self._engine.state.hidden_features,
            width=width,
            height=height,
            mirror=mirror,
        )

    def snapshot(self) -> SessionSnapshot:
        st = self._engine.state
        passage = st.passage
        chars = tuple(
            CharView(
                char=ch,
                state=st.char_states[i],
                is_cursor=(i == st.cursor and not st.complete),
            )
            for i, ch in enumerate(passage.text)
        )
        return SessionSnapshot(
            chars=chars,
            author_line=f"- {passage.author}" if passage.author else "",
            elapsed_text=self._elapsed_text,
            wpm=self._wpm,
            accuracy_percent=self._engine.accuracy_percent(),
            progress_percent=self._engine.progress_percent(),
            mistakes=st.mistakes,
            hidden_features=tuple(st.hidden_features),
            active=st.active,
            complete=st.complete,
            face_status=self._face_status,
            outcome=self._outcome,
        )

    def _type_text(self, text: str) -> None:
        # Pasted or composed input arrives as several characters at once.
        # It is rejected whole so one event can never fill several positions.
        if len(text) != 1:
            logger.debug("Rejected %d-character input event", len(text))
            return
        self.commit(text)

    def _apply_tick(self, tick: ClockTick) -> None:
        if tick.generation != self._session_clock.generation:
            return
        self._elapsed_text = tick.elapsed_text
        self._wpm = tick.wpm
