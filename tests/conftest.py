"""Shared test fixtures for HandsOff."""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np
import pytest

from core.types import (
    FINGERTIP_INDICES,
    LOWER_LIP_INDEX,
    NUM_HAND_LANDMARKS,
    UPPER_LIP_INDEX,
    FaceObservation,
    Handedness,
    HandObservation,
    Landmark,
    PixelFormat,
    RawFrame,
)

FACE_MESH_SIZE = 478
FAR_AWAY = (0.95, 0.95)


def build_hand(
    tips: Sequence[tuple[float, float]] | None = None,
    rest: tuple[float, float] = FAR_AWAY,
    handedness: Handedness = Handedness.RIGHT,
) -> HandObservation:
    """A hand whose non-tip landmarks sit at ``rest`` and whose fingertips are ``tips``."""
    points = [Landmark(*rest) for _ in range(NUM_HAND_LANDMARKS)]
    for idx, tip in zip(FINGERTIP_INDICES, tips or [rest] * len(FINGERTIP_INDICES)):
        points[idx] = Landmark(*tip)
    return HandObservation(tuple(points), handedness=handedness, confidence=0.9)


def build_face(mouth: tuple[float, float] = (0.5, 0.5), lip_gap: float = 0.0) -> FaceObservation:
    """A face mesh whose lip landmarks straddle ``mouth`` vertically."""
    points = [Landmark(0.5, 0.3) for _ in range(FACE_MESH_SIZE)]
    points[UPPER_LIP_INDEX] = Landmark(mouth[0], mouth[1] - lip_gap / 2)
    points[LOWER_LIP_INDEX] = Landmark(mouth[0], mouth[1] + lip_gap / 2)
    return FaceObservation(tuple(points))


class FakeHandProvider:
    """Returns scripted hands, one list per detect() call (last one repeats)."""

    def __init__(self, script: Sequence[list[HandObservation]] = ((),)) -> None:
        self._script = [list(s) for s in script]
        self.calls = 0
        self.closed = False

    def detect(self, image: np.ndarray) -> list[HandObservation]:
        hands = self._script[min(self.calls, len(self._script) - 1)]
        self.calls += 1
        return hands

    def close(self) -> None:
        self.closed = True


class FakeFaceProvider:
    def __init__(self, faces: Sequence[FaceObservation] = ()) -> None:
        self.faces = list(faces)
        self.calls = 0
        self.closed = False

    def detect(self, image: np.ndarray) -> list[FaceObservation]:
        self.calls += 1
        return self.faces

    def close(self) -> None:
        self.closed = True


class FakeAudio:
    def __init__(self) -> None:
        self.plays = 0
        self.closed = False

    def play_once(self) -> None:
        self.plays += 1

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_hand() -> Callable[..., HandObservation]:
    return build_hand


@pytest.fixture
def make_face() -> Callable[..., FaceObservation]:
    return build_face


@pytest.fixture
def near_hand() -> HandObservation:
    """Index fingertip 0.05 from a mouth at (0.5, 0.5)."""
    return build_hand(tips=[FAR_AWAY, (0.55, 0.5), FAR_AWAY, FAR_AWAY, FAR_AWAY])


@pytest.fixture
def far_hand() -> HandObservation:
    return build_hand()


@pytest.fixture
def face() -> FaceObservation:
    return build_face((0.5, 0.5), lip_gap=0.02)


@pytest.fixture
def fake_audio() -> FakeAudio:
    return FakeAudio()


@pytest.fixture
def dummy_bgr_frame() -> np.ndarray:
    """Generate a dummy 480x640 BGR frame."""
    return np.random.default_rng(42).integers(
        0, 256, (480, 640, 3), dtype=np.uint8
    )


@pytest.fixture
def raw_frame(dummy_bgr_frame: np.ndarray) -> RawFrame:
    h, w = dummy_bgr_frame.shape[:2]
    return RawFrame(data=dummy_bgr_frame, width=w, height=h, pixel_format=PixelFormat.BGR)
