from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np

from .redaction_map import LANDMARK_GROUPS, MIN_LANDMARK_COUNT, FeatureId

# Padding relative to the group's own extent, plus a slice of the frame.
PAD_GROUP_X = 1.2
PAD_GROUP_Y = 1.4
PAD_FRAME_X = 0.06
PAD_FRAME_Y = 0.05
PAD_SPREAD = 1.5


@dataclass(frozen=True, slots=True)
class RedactionRect:
    feature: FeatureId
    x: float
    y: float
    w: float
    h: float

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (int(round(self.x)), int(round(self.y)), int(round(self.w)), int(round(self.h)))


def as_landmark_array(landmarks: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
    """Coerce provider output to an (N, 2) float array of normalized x, y."""

    pts = np.asarray(landmarks, dtype=np.float32)
    if pts.ndim != 2 or pts.shape[1] < 2:
        raise ValueError(f"landmarks must be an (N, 2+) array, got shape {pts.shape}")
    if pts.shape[0] < MIN_LANDMARK_COUNT:
        raise ValueError(f"expected at least {MIN_LANDMARK_COUNT} landmarks, got {pts.shape[0]}")
    return pts[:, :2]


def project_redactions(
    landmarks: np.ndarray | Sequence[Sequence[float]] | None,
    hidden: Iterable[FeatureId],
    *,
    width: int,
    height: int,
    mirror: bool = False,
) -> list[RedactionRect]:
    """One covering rectangle per hidden feature, in target pixel space.

    No landmarks means no face in this frame: nothing is drawn.
    """

    if landmarks is None:
        return []
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be > 0")

    pts = as_landmark_array(landmarks)
    rects: list[RedactionRect] = []
    for feature in hidden:
        group = pts[list(LANDMARK_GROUPS[feature])]
        xs = group[:, 0] * width
        if mirror:
            xs = width - xs
        ys = group[:, 1] * height

        min_x, max_x = float(xs.min()), float(xs.max())
        min_y, max_y = float(ys.min()), float(ys.max())
        bw = max_x - min_x
        bh = max_y - min_y
        pad_x = bw * PAD_GROUP_X + width * PAD_FRAME_X
        pad_y = bh * PAD_GROUP_Y + height * PAD_FRAME_Y

        rects.append(
            RedactionRect(
                feature=feature,
                x=min_x - pad_x,
                y=min_y - pad_y,
                w=bw + pad_x * PAD_SPREAD,
                h=bh + pad_y * PAD_SPREAD,
            )
        )
    return rects
