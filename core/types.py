"""Shared types, protocols, and constants for the HandsOff core."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, NamedTuple, Protocol

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NUM_HAND_LANDMARKS = 21
FINGERTIP_INDICES: tuple[int, ...] = (4, 8, 12, 16, 20)  # thumb → pinky
UPPER_LIP_INDEX = 13
LOWER_LIP_INDEX = 14
MIN_FACE_LANDMARKS = LOWER_LIP_INDEX + 1
DEFAULT_PROXIMITY_THRESHOLD = 0.1  # normalized image units


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Handedness(Enum):
    LEFT = "left"
    RIGHT = "right"
    UNKNOWN = "unknown"


class AlertState(Enum):
    """Session-wide alert latch."""
    MONITORING = "monitoring"
    ALERTING = "alerting"


class PixelFormat(Enum):
    """Pixel encodings a frame source may deliver."""
    BGR = "bgr"
    RGB = "rgb"
    NV21 = "nv21"
    I420 = "i420"


# ---------------------------------------------------------------------------
# Core Data Structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Landmark:
    """A keypoint in normalized image coordinates.

    Attributes:
        x: Horizontal position divided by image width.
        y: Vertical position divided by image height.
        z: Relative depth (ignored by the proximity check).
    """
    x: float
    y: float
    z: float = 0.0


def _to_landmarks(points: Sequence[Sequence[float]] | NDArray[np.float32]) -> tuple[Landmark, ...]:
    arr = np.asarray(points, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] not in (2, 3):
        raise ValueError(f"Expected (N, 2) or (N, 3) points, got shape {arr.shape}")
    if arr.shape[1] == 2:
        return tuple(Landmark(float(x), float(y)) for x, y in arr)
    return tuple(Landmark(float(x), float(y), float(z)) for x, y, z in arr)


@dataclass(frozen=True, slots=True)
class HandObservation:
    """The 21 landmarks of one detected hand.

    Attributes:
        landmarks: Landmarks in MediaPipe hand order (4/8/12/16/20 = fingertips).
        handedness: Left or right hand.
        confidence: Handedness confidence [0, 1].
    """
    landmarks: tuple[Landmark, ...]
    handedness: Handedness = Handedness.UNKNOWN
    confidence: float = 0.0

    def __post_init__(self) -> None:
        assert len(self.landmarks) == NUM_HAND_LANDMARKS, (
            f"Expected {NUM_HAND_LANDMARKS} hand landmarks, got {len(self.landmarks)}"
        )

    @classmethod
    def from_points(
        cls,
        points: Sequence[Sequence[float]] | NDArray[np.float32],
        handedness: Handedness = Handedness.UNKNOWN,
        confidence: float = 0.0,
    ) -> HandObservation:
        return cls(_to_landmarks(points), handedness=handedness, confidence=confidence)

    def fingertips(self) -> tuple[Landmark, ...]:
        return tuple(self.landmarks[i] for i in FINGERTIP_INDICES)


@dataclass(frozen=True, slots=True)
class FaceObservation:
    """Landmarks of one detected face (at least up to the lower lip, index 14)."""
    landmarks: tuple[Landmark, ...]

    def __post_init__(self) -> None:
        assert len(self.landmarks) >= MIN_FACE_LANDMARKS, (
            f"Expected at least {MIN_FACE_LANDMARKS} face landmarks, got {len(self.landmarks)}"
        )

    @classmethod
    def from_points(cls, points: Sequence[Sequence[float]] | NDArray[np.float32]) -> FaceObservation:
        return cls(_to_landmarks(points))


class Transition(NamedTuple):
    """Outcome of one alert-state step."""
    state: AlertState
    should_play_sound: bool


@dataclass(frozen=True, slots=True)
class RawFrame:
    """A frame as delivered by a frame source, before decoding.

    Attributes:
        data: Pixel buffer (bytes or ndarray) in ``pixel_format``.
        width: Frame width in pixels.
        height: Frame height in pixels.
        pixel_format: Encoding of ``data``.
        rotation_degrees: Clockwise rotation needed to make the image upright.
        timestamp_ms: Capture timestamp in milliseconds.
    """
    data: bytes | NDArray[np.uint8]
    width: int
    height: int
    pixel_format: PixelFormat = PixelFormat.BGR
    rotation_degrees: int = 0
    timestamp_ms: float = 0.0


@dataclass(frozen=True, slots=True)
class FrameResult:
    """Complete result for a single processed frame.

    Attributes:
        hands: Detected hands.
        faces: Detected faces (only the first is consulted).
        detected: Whether a fingertip was near the mouth.
        state: Alert state after this frame.
        sound_triggered: Whether this frame was a rising edge.
        timestamp_ms: Frame timestamp in milliseconds.
        inference_time_ms: Total processing latency in milliseconds.
    """
    hands: list[HandObservation] = field(default_factory=list)
    faces: list[FaceObservation] = field(default_factory=list)
    detected: bool = False
    state: AlertState = AlertState.MONITORING
    sound_triggered: bool = False
    timestamp_ms: float = 0.0
    inference_time_ms: float = 0.0


# ---------------------------------------------------------------------------
# Protocols (Interfaces)
# ---------------------------------------------------------------------------

class HandLandmarkProvider(Protocol):
    """Protocol for hand landmark detection backends."""

    def detect(self, image: NDArray[np.uint8]) -> list[HandObservation]:
        """Detect hands in a BGR image."""
        ...

    def close(self) -> None:
        """Release resources."""
        ...


class FaceLandmarkProvider(Protocol):
    """Protocol for face landmark detection backends."""

    def detect(self, image: NDArray[np.uint8]) -> list[FaceObservation]:
        """Detect faces in a BGR image."""
        ...

    def close(self) -> None:
        """Release resources."""
        ...


class AudioSink(Protocol):
    """Fire-and-forget alert sound."""

    def play_once(self) -> None:
        ...

    def close(self) -> None:
        ...
