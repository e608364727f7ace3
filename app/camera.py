"""OpenCV camera frame source.

Reads frames on a dedicated capture thread and hands each one to a
callback as a RawFrame. The callback must not block; the session's
worker drops stale frames on its own.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from threading import Event, Thread
from typing import Any

import cv2
from loguru import logger

from core.exceptions import CameraUnavailableError
from core.types import PixelFormat, RawFrame


class OpenCVFrameSource:
    """Camera capture via ``cv2.VideoCapture``.

    Usage:
        >>> source = OpenCVFrameSource(index=0)
        >>> source.start(session.submit)
        >>> ...
        >>> source.stop()
    """

    def __init__(
        self,
        index: int = 0,
        width: int = 1280,
        height: int = 720,
        rotation_degrees: int = 0,
    ) -> None:
        self._index = index
        self._width = width
        self._height = height
        self._rotation = rotation_degrees
        self._cap: cv2.VideoCapture | None = None
        self._thread: Thread | None = None
        self._stop = Event()
        self._frames_read = 0

    @property
    def frames_read(self) -> int:
        return self._frames_read

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, on_frame: Callable[[RawFrame], object]) -> None:
        """Open the camera and start delivering frames to ``on_frame``.

        Raises:
            CameraUnavailableError: If the device cannot be opened.
        """
        if self._cap is not None:
            return

        cap = cv2.VideoCapture(self._index)
        if not cap.isOpened():
            cap.release()
            raise CameraUnavailableError(f"Cannot open camera {self._index}")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)

        self._cap = cap
        self._stop.clear()
        self._thread = Thread(target=self._capture_loop, args=(on_frame,), name="camera-capture", daemon=True)
        self._thread.start()
        logger.info(
            f"Camera {self._index} started | "
            f"{int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))}x{int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))}"
        )

    def stop(self) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout=2.0)
        cap, self._cap = self._cap, None
        if cap is not None:
            cap.release()
            logger.info(f"Camera {self._index} released after {self._frames_read} frames")

    def _capture_loop(self, on_frame: Callable[[RawFrame], object]) -> None:
        cap = self._cap
        while cap is not None and not self._stop.is_set():
            ok, frame = cap.read()
            if not ok:
                logger.warning(f"Camera {self._index} returned no frame; stopping capture")
                break
            self._frames_read += 1
            h, w = frame.shape[:2]
            on_frame(
                RawFrame(
                    data=frame,
                    width=w,
                    height=h,
                    pixel_format=PixelFormat.BGR,
                    rotation_degrees=self._rotation,
                    timestamp_ms=time.time() * 1000.0,
                )
            )

    def __enter__(self) -> OpenCVFrameSource:
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()
