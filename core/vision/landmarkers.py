"""MediaPipe-based hand and face landmark providers.

Wraps the MediaPipe Tasks HandLandmarker and FaceLandmarker to provide a
clean, typed interface returning HandObservation / FaceObservation lists.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any

import cv2
import mediapipe as mp
import numpy as np
from loguru import logger
from mediapipe.tasks.python import BaseOptions
from mediapipe.tasks.python.vision import (
    FaceLandmarker,
    FaceLandmarkerOptions,
    HandLandmarker,
    HandLandmarkerOptions,
    RunningMode,
)

from core.exceptions import ProviderUnavailableError
from core.types import FaceObservation, Handedness, HandObservation, Landmark
from core.vision.model_assets import FACE_LANDMARKER_URL, HAND_LANDMARKER_URL, ensure_model


def _to_mp_image(frame: np.ndarray) -> mp.Image:
    if frame is None or frame.ndim != 3 or frame.shape[2] != 3:
        raise ValueError(
            f"Expected BGR frame with shape (H, W, 3), got "
            f"{'None' if frame is None else frame.shape}"
        )
    # MediaPipe expects RGB
    rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
    return mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)


def _to_landmarks(points: Any) -> tuple[Landmark, ...]:
    return tuple(Landmark(float(p.x), float(p.y), float(p.z or 0.0)) for p in points)


class MediaPipeHandLandmarker:
    """Hand landmark provider using the MediaPipe Tasks HandLandmarker.

    Usage:
        >>> with MediaPipeHandLandmarker("models/hand_landmarker.task") as hands:
        ...     for hand in hands.detect(bgr_frame):
        ...         print(hand.handedness, hand.fingertips())
    """

    def __init__(
        self,
        model_path: str | Path,
        max_hands: int = 2,
        min_detection_confidence: float = 0.5,
        min_presence_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ) -> None:
        """Load the hand landmark model.

        Raises:
            ProviderUnavailableError: If the model cannot be found or loaded.
        """
        try:
            path = ensure_model(model_path, HAND_LANDMARKER_URL)
            options = HandLandmarkerOptions(
                base_options=BaseOptions(model_asset_path=str(path)),
                running_mode=RunningMode.IMAGE,
                num_hands=max_hands,
                min_hand_detection_confidence=min_detection_confidence,
                min_hand_presence_confidence=min_presence_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
            self._landmarker: HandLandmarker | None = HandLandmarker.create_from_options(options)
        except Exception as e:
            raise ProviderUnavailableError(f"Could not initialize hand landmarker: {e}") from e

        self._last_inference_ms: float = 0.0
        logger.info(f"Hand landmarker ready | model={path.name} max_hands={max_hands}")

    @property
    def last_inference_ms(self) -> float:
        """Return last inference time in milliseconds."""
        return self._last_inference_ms

    def detect(self, image: np.ndarray) -> list[HandObservation]:
        """Detect hand landmarks in a BGR image.

        Returns an empty list once the provider has been closed.
        """
        if self._landmarker is None:
            return []

        mp_image = _to_mp_image(image)
        t_start = time.perf_counter()
        result = self._landmarker.detect(mp_image)
        self._last_inference_ms = (time.perf_counter() - t_start) * 1000.0

        hands: list[HandObservation] = []
        for idx, points in enumerate(result.hand_landmarks or []):
            handedness = Handedness.UNKNOWN
            confidence = 0.0
            if result.handedness and idx < len(result.handedness) and result.handedness[idx]:
                category = result.handedness[idx][0]
                label = (category.category_name or "").lower()
                confidence = float(category.score or 0.0)
                handedness = (
                    Handedness.LEFT
                    if label == "left"
                    else Handedness.RIGHT
                    if label == "right"
                    else Handedness.UNKNOWN
                )
            hands.append(
                HandObservation(_to_landmarks(points), handedness=handedness, confidence=confidence)
            )
        return hands

    def close(self) -> None:
        """Release MediaPipe resources."""
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None

    def __enter__(self) -> MediaPipeHandLandmarker:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class MediaPipeFaceLandmarker:
    """Face landmark provider using the MediaPipe Tasks FaceLandmarker (478-point mesh)."""

    def __init__(
        self,
        model_path: str | Path,
        max_faces: int = 1,
        min_detection_confidence: float = 0.5,
        min_presence_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ) -> None:
        try:
            path = ensure_model(model_path, FACE_LANDMARKER_URL)
            options = FaceLandmarkerOptions(
                base_options=BaseOptions(model_asset_path=str(path)),
                running_mode=RunningMode.IMAGE,
                num_faces=max_faces,
                min_face_detection_confidence=min_detection_confidence,
                min_face_presence_confidence=min_presence_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
            self._landmarker: FaceLandmarker | None = FaceLandmarker.create_from_options(options)
        except Exception as e:
            raise ProviderUnavailableError(f"Could not initialize face landmarker: {e}") from e

        self._last_inference_ms: float = 0.0
        logger.info(f"Face landmarker ready | model={path.name} max_faces={max_faces}")

    @property
    def last_inference_ms(self) -> float:
        return self._last_inference_ms

    def detect(self, image: np.ndarray) -> list[FaceObservation]:
        if self._landmarker is None:
            return []

        mp_image = _to_mp_image(image)
        t_start = time.perf_counter()
        result = self._landmarker.detect(mp_image)
        self._last_inference_ms = (time.perf_counter() - t_start) * 1000.0

        return [FaceObservation(_to_landmarks(points)) for points in result.face_landmarks or []]

    def close(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None

    def __enter__(self) -> MediaPipeFaceLandmarker:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
