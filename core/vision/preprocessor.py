"""Frame preprocessing utilities for the vision pipeline.

Decodes raw camera frames (NV21, I420, RGB, BGR) into upright BGR images,
then applies mirroring and resizing before landmark detection.
"""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np

from core.exceptions import FrameDecodeError
from core.types import PixelFormat, RawFrame

_ROTATIONS: dict[int, int | None] = {
    0: None,
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}

_YUV_CODES: dict[PixelFormat, int] = {
    PixelFormat.NV21: cv2.COLOR_YUV2BGR_NV21,
    PixelFormat.I420: cv2.COLOR_YUV2BGR_I420,
}


@dataclass(frozen=True, slots=True)
class PreprocessConfig:
    """Configuration for frame preprocessing.

    Attributes:
        target_width: Target frame width (0 = preserve aspect ratio).
        target_height: Target frame height (0 = preserve aspect ratio).
        max_dimension: Maximum dimension; downscale if exceeded.
        flip_horizontal: Mirror the frame (useful for selfie mode).
    """
    target_width: int = 0
    target_height: int = 0
    max_dimension: int = 1280
    flip_horizontal: bool = False


class FramePreprocessor:
    """Production frame preprocessor.

    Handles all frame transformations before feeding to the landmark
    providers. Stateless and thread-safe.

    Usage:
        >>> preprocessor = FramePreprocessor(PreprocessConfig(max_dimension=640))
        >>> image = preprocessor.decode(raw_frame)
    """

    def __init__(self, config: PreprocessConfig | None = None) -> None:
        self._config = config or PreprocessConfig()

    @property
    def config(self) -> PreprocessConfig:
        return self._config

    def decode(self, raw: RawFrame) -> np.ndarray:
        """Convert a raw frame into an upright, preprocessed BGR image.

        Args:
            raw: Frame as delivered by the frame source.

        Returns:
            BGR image (H, W, 3), dtype uint8.

        Raises:
            FrameDecodeError: If the pixel data does not match the declared
                format and size, or the rotation hint is unsupported.
        """
        if raw is None:
            raise FrameDecodeError("Frame is None")

        rotation = raw.rotation_degrees % 360
        if rotation not in _ROTATIONS:
            raise FrameDecodeError(f"Unsupported rotation: {raw.rotation_degrees} degrees")

        bgr = self._to_bgr(raw)
        rotate_code = _ROTATIONS[rotation]
        if rotate_code is not None:
            bgr = cv2.rotate(bgr, rotate_code)

        return self.process(bgr)

    def process(self, frame: np.ndarray) -> np.ndarray:
        """Apply mirroring and resizing to an upright BGR frame.

        Args:
            frame: BGR frame (H, W, 3), dtype uint8.

        Returns:
            Preprocessed BGR frame.

        Raises:
            FrameDecodeError: If frame is invalid.
        """
        self._validate(frame)
        result = frame

        if self._config.flip_horizontal:
            result = cv2.flip(result, 1)

        return self._resize(result)

    def _to_bgr(self, raw: RawFrame) -> np.ndarray:
        w, h = raw.width, raw.height
        if w <= 0 or h <= 0:
            raise FrameDecodeError(f"Frame is empty ({w}x{h})")

        if isinstance(raw.data, (bytes, bytearray, memoryview)):
            flat = np.frombuffer(raw.data, dtype=np.uint8)
        else:
            flat = np.ascontiguousarray(raw.data, dtype=np.uint8).reshape(-1)

        if raw.pixel_format in _YUV_CODES:
            if w % 2 or h % 2:
                raise FrameDecodeError(f"YUV frames need even dimensions, got {w}x{h}")
            expected = w * h * 3 // 2
            if flat.size != expected:
                raise FrameDecodeError(
                    f"{raw.pixel_format.name} frame {w}x{h} needs {expected} bytes, got {flat.size}"
                )
            yuv = flat.reshape(h * 3 // 2, w)
            return cv2.cvtColor(yuv, _YUV_CODES[raw.pixel_format])

        expected = w * h * 3
        if flat.size != expected:
            raise FrameDecodeError(
                f"{raw.pixel_format.name} frame {w}x{h} needs {expected} bytes, got {flat.size}"
            )
        image = flat.reshape(h, w, 3)
        if raw.pixel_format is PixelFormat.RGB:
            return cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
        return image

    def _validate(self, frame: np.ndarray) -> None:
        """Validate input frame."""
        if frame is None:
            raise FrameDecodeError("Frame is None")
        if frame.ndim != 3 or frame.shape[2] != 3:
            raise FrameDecodeError(f"Expected (H, W, 3) BGR frame, got shape {frame.shape}")
        if frame.size == 0:
            raise FrameDecodeError("Frame is empty")

    def _resize(self, frame: np.ndarray) -> np.ndarray:
        """Resize frame according to config."""
        h, w = frame.shape[:2]

        # Fixed target size
        if self._config.target_width > 0 and self._config.target_height > 0:
            return cv2.resize(
                frame,
                (self._config.target_width, self._config.target_height),
                interpolation=cv2.INTER_LINEAR,
            )

        # Max dimension constraint
        max_dim = max(h, w)
        if max_dim > self._config.max_dimension:
            scale = self._config.max_dimension / max_dim
            new_w = int(w * scale)
            new_h = int(h * scale)
            return cv2.resize(frame, (new_w, new_h), interpolation=cv2.INTER_LINEAR)

        return frame
