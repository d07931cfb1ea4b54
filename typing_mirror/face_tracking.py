"""Camera capture and face landmarks on a background thread.

The worker only produces commands. It never touches session state, so it
may keep running across passage resets without any coordination.
"""

from __future__ import annotations

import logging
import os
import threading
import time
import urllib.request
from pathlib import Path

import cv2
import numpy as np

from .config import AppConfig
from .controller import CommandBus, FaceLost, FrameArrived

logger = logging.getLogger(__name__)


class CameraError(RuntimeError):
    """The camera or the landmark model could not be started."""


def ensure_model(path: Path, url: str) -> Path:
    if path.exists():
        return path
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Downloading face landmark model to %s", path)
    # Only a complete download may appear under the final name.
    part = path.with_name(path.name + ".part")
    try:
        urllib.request.urlretrieve(url, part)
        os.replace(part, path)
    except OSError as exc:
        part.unlink(missing_ok=True)
        raise CameraError(f"Failed to download face landmark model: {exc}") from exc
    return path


def landmarks_to_array(face_landmarks: list) -> np.ndarray:
    """MediaPipe NormalizedLandmark list -> (N, 2) float32 of x, y."""

    return np.array([[lm.x, lm.y] for lm in face_landmarks], dtype=np.float32)


class FaceTracker:
    def __init__(self, bus: CommandBus, *, config: AppConfig) -> None:
        self._bus = bus
        self._config = config
        self._cap: cv2.VideoCapture | None = None
        self._landmarker = None
        self._worker: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._timestamp_ms = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self) -> None:
        if self.running:
            return
        cfg = self._config

        cap = cv2.VideoCapture(cfg.camera_index)
        if not cap.isOpened():
            cap.release()
            raise CameraError(f"Unable to open camera index {cfg.camera_index}")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.capture_width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.capture_height)

        try:
            self._landmarker = self._create_landmarker()
        except CameraError:
            cap.release()
            raise
        except (ImportError, RuntimeError, ValueError) as exc:
            cap.release()
            raise CameraError(f"Unable to load face landmark model: {exc}") from exc
        self._cap = cap

        self._stop_event.clear()
        self._worker = threading.Thread(target=self._loop, name="face-tracker", daemon=True)
        self._worker.start()
        logger.info("Face tracker started on camera index %s", cfg.camera_index)

    def stop(self) -> None:
        self._stop_event.set()
        worker = self._worker
        if worker is not None:
            worker.join(timeout=3.0)
            if worker.is_alive():
                # The worker may still be inside read() or detect_for_video().
                logger.warning("Face tracker worker did not stop; leaving camera open")
                return
        self._worker = None

        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
        logger.info("Face tracker stopped")

    def _create_landmarker(self):
        from mediapipe.tasks import python
        from mediapipe.tasks.python import vision

        cfg = self._config
        model_path = ensure_model(cfg.model_path, cfg.model_url)

        options = vision.FaceLandmarkerOptions(
            base_options=python.BaseOptions(model_asset_path=str(model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_faces=1,
            min_face_detection_confidence=cfg.min_detection_confidence,
            min_face_presence_confidence=cfg.min_detection_confidence,
            min_tracking_confidence=cfg.min_tracking_confidence,
        )
        return vision.FaceLandmarker.create_from_options(options)

    def _next_timestamp_ms(self) -> int:
        # VIDEO mode requires strictly increasing timestamps.
        now_ms = int(time.monotonic() * 1000)
        self._timestamp_ms = max(self._timestamp_ms + 1, now_ms)
        return self._timestamp_ms

    def _loop(self) -> None:
        try:
            self._track_frames()
        except Exception:
            logger.exception("Face tracker worker failed")
        finally:
            # Drop the last landmarks so no stale redaction outlives the worker.
            self._bus.put(FaceLost())

    def _track_frames(self) -> None:
        import mediapipe as mp

        assert self._cap is not None
        assert self._landmarker is not None
        while not self._stop_event.is_set():
            ok, frame = self._cap.read()
            if not ok or frame is None:
                time.sleep(0.01)
                continue

            rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
            try:
                result = self._landmarker.detect_for_video(mp_image, self._next_timestamp_ms())
            except RuntimeError as exc:
                logger.debug("Face detection failed: %s", exc)
                self._bus.put(FaceLost(image=rgb))
                continue

            if result.face_landmarks:
                self._bus.put(FrameArrived(landmarks=landmarks_to_array(result.face_landmarks[0]), image=rgb))
            else:
                self._bus.put(FaceLost(image=rgb))
