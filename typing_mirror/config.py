from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from .outcome import DEFAULT_FAILURE_THRESHOLD

ENV_PREFIX = "TYPING_MIRROR_"

FACE_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/1/"
    "face_landmarker.task"
)


def _default_model_path() -> Path:
    return Path(__file__).resolve().parent / "models" / "face_landmarker.task"


@dataclass(frozen=True, slots=True)
class AppConfig:
    # More than this many mistakes in one passage is a failure.
    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD
    tick_interval_s: float = 0.5
    corpus_path: Path | None = Path("passages.csv")

    disable_camera: bool = False
    camera_index: int = 0
    capture_width: int = 640
    capture_height: int = 480
    mirror_view: bool = True
    model_path: Path = _default_model_path()
    model_url: str = FACE_MODEL_URL
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    target_fps: int = 60
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.failure_threshold < 0:
            raise ValueError("failure_threshold must be >= 0")
        if self.tick_interval_s <= 0:
            raise ValueError("tick_interval_s must be > 0")
        if self.capture_width <= 0 or self.capture_height <= 0:
            raise ValueError("capture size must be > 0")
        if not (0.0 <= self.min_detection_confidence <= 1.0):
            raise ValueError("min_detection_confidence must be in [0.0, 1.0]")
        if not (0.0 <= self.min_tracking_confidence <= 1.0):
            raise ValueError("min_tracking_confidence must be in [0.0, 1.0]")
        if self.target_fps <= 0:
            raise ValueError("target_fps must be > 0")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """Defaults overridden by ``TYPING_MIRROR_*`` environment variables."""

        env = os.environ if environ is None else environ
        cfg = cls()
        changes: dict[str, object] = {}

        def get(name: str) -> str | None:
            raw = env.get(ENV_PREFIX + name)
            if raw is None or raw.strip() == "":
                return None
            return raw.strip()

        if (v := get("FAILURE_THRESHOLD")) is not None:
            changes["failure_threshold"] = _parse_int("FAILURE_THRESHOLD", v)
        if (v := get("TICK_INTERVAL_S")) is not None:
            changes["tick_interval_s"] = _parse_float("TICK_INTERVAL_S", v)
        if (v := get("CORPUS_PATH")) is not None:
            changes["corpus_path"] = Path(v).expanduser()
        if (v := get("DISABLE_CAMERA")) is not None:
            changes["disable_camera"] = v == "1"
        if (v := get("CAMERA_INDEX")) is not None:
            changes["camera_index"] = _parse_int("CAMERA_INDEX", v)
        if (v := get("MIRROR_VIEW")) is not None:
            changes["mirror_view"] = v == "1"
        if (v := get("MODEL_PATH")) is not None:
            changes["model_path"] = Path(v).expanduser()
        if (v := get("TARGET_FPS")) is not None:
            changes["target_fps"] = _parse_int("TARGET_FPS", v)
        if (v := get("LOG_LEVEL")) is not None:
            changes["log_level"] = v.upper()

        return replace(cfg, **changes) if changes else cfg


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from None


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from None


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
