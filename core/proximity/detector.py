"""Hand-to-mouth proximity check.

Compares the five fingertips of every detected hand against the mouth
center of the first detected face, in normalized image coordinates.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from core.types import (
    DEFAULT_PROXIMITY_THRESHOLD,
    LOWER_LIP_INDEX,
    UPPER_LIP_INDEX,
    FaceObservation,
    HandObservation,
    Landmark,
)


def landmark_distance(a: Landmark, b: Landmark) -> float:
    """Euclidean distance between two landmarks in the (x, y) plane."""
    return math.hypot(a.x - b.x, a.y - b.y)


def mouth_center(face: FaceObservation) -> Landmark:
    """Midpoint of the upper (13) and lower (14) lip landmarks."""
    upper = face.landmarks[UPPER_LIP_INDEX]
    lower = face.landmarks[LOWER_LIP_INDEX]
    return Landmark((upper.x + lower.x) / 2, (upper.y + lower.y) / 2)


def detect(
    hands: Sequence[HandObservation],
    faces: Sequence[FaceObservation],
    threshold: float = DEFAULT_PROXIMITY_THRESHOLD,
) -> bool:
    """Return True if any fingertip is closer than ``threshold`` to the mouth.

    Only ``faces[0]`` is consulted. Returns on the first qualifying fingertip.

    Args:
        hands: Hands detected in the frame (any order).
        faces: Faces detected in the same frame.
        threshold: Strict upper bound on the fingertip-to-mouth distance.

    Returns:
        True if a hand is near the mouth, False otherwise (including when no
        hand or no face was detected).
    """
    if not hands or not faces:
        return False

    mouth = mouth_center(faces[0])
    for hand in hands:
        for tip in hand.fingertips():
            if landmark_distance(tip, mouth) < threshold:
                return True
    return False


class ProximityDetector:
    """Stateless proximity detector with a configurable threshold.

    Safe to share between threads.

    Usage:
        >>> detector = ProximityDetector(threshold=0.1)
        >>> detector.detect(hands, faces)
        False
    """

    def __init__(self, threshold: float = DEFAULT_PROXIMITY_THRESHOLD) -> None:
        if threshold <= 0:
            raise ValueError(f"threshold must be positive, got {threshold}")
        self._threshold = threshold

    @property
    def threshold(self) -> float:
        return self._threshold

    def detect(
        self,
        hands: Sequence[HandObservation],
        faces: Sequence[FaceObservation],
    ) -> bool:
        return detect(hands, faces, self._threshold)
