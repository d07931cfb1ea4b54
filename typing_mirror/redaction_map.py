"""Facial regions that can be redacted, and the order they are taken away.

Indices refer to the MediaPipe face mesh (478 points with refined
landmarks). Groups are outlines, so a few indices repeat; repeats do not
change a bounding box.
"""

from __future__ import annotations

from enum import StrEnum


class FeatureId(StrEnum):
    LEFT_BROW = "left_brow"
    RIGHT_BROW = "right_brow"
    NOSE = "nose"
    LEFT_EYE = "left_eye"
    RIGHT_EYE = "right_eye"
    MOUTH = "mouth"
    EARS = "ears"


_LABELS: dict[FeatureId, str] = {
    FeatureId.LEFT_BROW: "Left Eyebrow",
    FeatureId.RIGHT_BROW: "Right Eyebrow",
    FeatureId.NOSE: "Nose",
    FeatureId.LEFT_EYE: "Left Eye",
    FeatureId.RIGHT_EYE: "Right Eye",
    FeatureId.MOUTH: "Mouth",
    FeatureId.EARS: "Ears",
}


LANDMARK_GROUPS: dict[FeatureId, tuple[int, ...]] = {
    FeatureId.LEFT_BROW: (
        336, 296, 334, 293, 300, 283, 282, 295, 285, 276, 283, 282, 295, 285, 336, 296, 334,
    ),
    FeatureId.RIGHT_BROW: (
        70, 63, 105, 66, 107, 55, 65, 52, 53, 46, 55, 65, 52, 53, 70, 63, 105,
    ),
    FeatureId.LEFT_EYE: (
        362, 382, 381, 380, 374, 373, 390, 249, 263, 466, 388, 387, 386, 385, 384, 398,
    ),
    FeatureId.RIGHT_EYE: (
        33, 7, 163, 144, 145, 153, 154, 155, 133, 173, 157, 158, 159, 160, 161, 246,
    ),
    FeatureId.NOSE: (168, 6, 197, 195, 5, 4, 1, 19, 94, 2, 164, 0),
    FeatureId.MOUTH: (
        61, 185, 40, 39, 37, 0, 267, 269, 270, 409, 291, 375, 321, 405, 314, 17, 84, 181, 91, 146, 61,
    ),
    FeatureId.EARS: (234, 227, 116, 123, 147, 213, 215, 454, 447, 345, 352, 376, 433, 435),
}


# One feature is hidden per mistake, front to back.
REDACTION_PRIORITY: tuple[FeatureId, ...] = (
    FeatureId.LEFT_BROW,
    FeatureId.RIGHT_BROW,
    FeatureId.NOSE,
    FeatureId.LEFT_EYE,
    FeatureId.RIGHT_EYE,
    FeatureId.MOUTH,
    FeatureId.EARS,
)

LANDMARK_COUNT = 478
MIN_LANDMARK_COUNT = max(max(group) for group in LANDMARK_GROUPS.values()) + 1


def feature_label(feature: FeatureId) -> str:
    return _LABELS[feature]


def next_feature_to_hide(hidden: list[FeatureId] | tuple[FeatureId, ...]) -> FeatureId | None:
    """First feature in priority order not yet in ``hidden``."""

    for feature in REDACTION_PRIORITY:
        if feature not in hidden:
            return feature
    return None
