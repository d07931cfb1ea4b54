from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pytest

from typing_mirror.config import AppConfig
from typing_mirror.controller import (
    FaceLost,
    FaceStatus,
    FrameArrived,
    NextPassage,
    RestartPassage,
    Retract,
    SessionController,
    Tick,
    TypeText,
)
from typing_mirror.corpus import Passage
from typing_mirror.outcome import FAILURE_MESSAGES, Classification
from typing_mirror.redaction_map import LANDMARK_COUNT, FeatureId
from typing_mirror.session import CharState


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


CORPUS = [Passage("cat"), Passage("hi", "Someone"), Passage("a" * 12)]


def _controller(clock: FakeClock | None = None, **cfg: object) -> SessionController:
    return SessionController(CORPUS, clock=clock or FakeClock(), config=AppConfig(**cfg), seed=5)


def _type(c: SessionController, text: str) -> None:
    for ch in text:
        c.bus.put(TypeText(ch))
    c.pump()


def _face() -> np.ndarray:
    return np.random.default_rng(0).uniform(0.3, 0.7, size=(LANDMARK_COUNT, 2)).astype(np.float32)


def test_empty_corpus_is_rejected() -> None:
    with pytest.raises(ValueError):
        SessionController([], clock=FakeClock())


def test_cat_scenario_through_commands() -> None:
    c = _controller()
    _type(c, "cxt")

    snap = c.snapshot()
    assert [v.state for v in snap.chars] == [CharState.CORRECT, CharState.INCORRECT, CharState.CORRECT]
    assert snap.mistakes == 1
    assert snap.hidden_features == (FeatureId.LEFT_BROW,)
    assert snap.complete is True
    assert snap.outcome is not None
    assert snap.outcome.accuracy_percent == 67
    assert snap.outcome.classification is Classification.SUCCESS


def test_hi_scenario_succeeds() -> None:
    c = _controller()
    c.dispatch(NextPassage())
    _type(c, "hi")
    outcome = c.outcome
    assert outcome is not None
    assert outcome.classification is Classification.SUCCESS
    assert outcome.message is None


def test_multi_character_event_is_rejected() -> None:
    c = _controller()
    c.dispatch(TypeText("ca"))
    snap = c.snapshot()
    assert all(v.state is CharState.PENDING for v in snap.chars)
    assert c.session_clock.armed is False


def test_first_commit_arms_clock_and_completion_disarms_it() -> None:
    c = _controller()
    _type(c, "c")
    assert c.session_clock.armed is True
    _type(c, "at")
    assert c.session_clock.armed is False


def test_outcome_resolved_once_and_late_input_ignored() -> None:
    clock = FakeClock()
    c = _controller(clock)
    _type(c, "cat")
    outcome = c.outcome

    clock.advance(5.0)
    _type(c, "zzz")
    c.dispatch(Retract())
    assert c.outcome is outcome
    assert c.snapshot().mistakes == 0


def test_eight_mistakes_hide_all_seven_and_fail() -> None:
    c = _controller()
    c.load_passage(2)
    _type(c, "x" * 8)
    snap = c.snapshot()
    assert snap.mistakes == 8
    assert len(snap.hidden_features) == 7

    _type(c, "aaaa")
    assert c.outcome is not None
    assert c.outcome.classification is Classification.FAILURE
    assert c.outcome.message in FAILURE_MESSAGES


def test_ticks_update_elapsed_and_wpm() -> None:
    clock = FakeClock()
    c = _controller(clock)
    c.load_passage(2)
    _type(c, "a" * 5)

    clock.advance(60.0)
    c.pump()
    snap = c.snapshot()
    assert snap.elapsed_text == "01:00"
    assert snap.wpm == 1


def test_tick_from_before_a_reset_is_dropped() -> None:
    clock = FakeClock()
    c = _controller(clock)
    c.load_passage(2)
    _type(c, "aa")
    clock.advance(61.0)
    stale = c.session_clock.poll(chars_typed=2)
    assert stale is not None

    c.dispatch(RestartPassage())
    c.dispatch(Tick(stale))
    snap = c.snapshot()
    assert snap.elapsed_text == "00:00"
    assert snap.wpm == 0
    assert c.session_clock.armed is False


def test_restart_clears_everything_from_the_passage() -> None:
    c = _controller()
    _type(c, "xx")
    c.dispatch(RestartPassage())
    snap = c.snapshot()
    assert c.passage_index == 0
    assert snap.mistakes == 0
    assert snap.hidden_features == ()
    assert snap.active is False
    assert snap.complete is False
    assert snap.outcome is None
    assert snap.progress_percent == 0


def test_next_passage_cycles_through_corpus() -> None:
    c = _controller()
    seen = []
    for _ in range(4):
        c.dispatch(NextPassage())
        seen.append(c.passage_index)
    assert seen == [1, 2, 0, 1]
    assert c.snapshot().author_line == "- Someone"


def test_snapshot_marks_cursor_until_complete() -> None:
    c = _controller()
    _type(c, "c")
    flags = [v.is_cursor for v in c.snapshot().chars]
    assert flags == [False, True, False]
    _type(c, "at")
    assert not any(v.is_cursor for v in c.snapshot().chars)


def test_frames_feed_projector_and_face_status() -> None:
    c = _controller()
    assert c.snapshot().face_status is FaceStatus.NO_CAMERA

    c.bus.put(FrameArrived(landmarks=_face()))
    _type(c, "x")
    assert c.snapshot().face_status is FaceStatus.DETECTED
    assert c.latest_landmarks is not None
    rects = c.redactions(width=640, height=480)
    assert [r.feature for r in rects] == [FeatureId.LEFT_BROW]

    c.dispatch(FaceLost())
    assert c.snapshot().face_status is FaceStatus.NOT_FOUND
    assert c.latest_landmarks is None
    assert c.redactions(width=640, height=480) == []


def test_frame_after_reset_reads_current_hidden_set() -> None:
    c = _controller()
    _type(c, "xx")
    c.dispatch(RestartPassage())
    c.dispatch(FrameArrived(landmarks=_face()))
    assert c.redactions(width=640, height=480) == []


def test_malformed_frame_does_not_drop_queued_keystrokes() -> None:
    c = _controller()
    c.bus.put(FrameArrived(landmarks=_face()))
    c.bus.put(TypeText("x"))
    c.bus.put(FrameArrived(landmarks=np.zeros((10, 2), dtype=np.float32)))
    c.bus.put(TypeText("a"))
    c.pump()

    snap = c.snapshot()
    assert [v.state for v in snap.chars[:2]] == [CharState.INCORRECT, CharState.CORRECT]
    assert snap.face_status is FaceStatus.NOT_FOUND
    assert c.latest_landmarks is None
    assert c.redactions(width=640, height=480) == []


def test_commands_apply_in_arrival_order() -> None:
    c = _controller()
    c.bus.put(TypeText("x"))
    c.bus.put(Retract())
    c.bus.put(TypeText("c"))
    c.pump()
    snap = c.snapshot()
    assert snap.chars[0].state is CharState.CORRECT
    assert snap.mistakes == 1


def test_unknown_command_is_a_type_error() -> None:
    with pytest.raises(TypeError):
        _controller().dispatch("type")  # type: ignore[arg-type]
