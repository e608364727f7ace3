"""Status window.

Renders the current alert status as a single centred line on a black
background (or over the camera preview), with the text colour fading
towards the state's colour over a short fast-out-slow-in animation.
"""

from __future__ import annotations

import time

import cv2
import numpy as np

from core.alert.channel import LatestValue
from core.alert.status import Color, status_for
from core.proximity.detector import mouth_center
from core.types import AlertState, FrameResult


def fast_out_slow_in(t: float) -> float:
    """Cubic-bezier(0.4, 0.0, 0.2, 1.0) easing, evaluated for progress ``t``."""
    if t <= 0.0:
        return 0.0
    if t >= 1.0:
        return 1.0

    x1, y1, x2, y2 = 0.4, 0.0, 0.2, 1.0

    def bezier(p1: float, p2: float, s: float) -> float:
        return 3 * (1 - s) ** 2 * s * p1 + 3 * (1 - s) * s**2 * p2 + s**3

    # x(s) is monotonic for these control points; bisect for s with x(s) == t
    lo, hi = 0.0, 1.0
    for _ in range(30):
        mid = (lo + hi) / 2
        if bezier(x1, x2, mid) < t:
            lo = mid
        else:
            hi = mid
    return bezier(y1, y2, (lo + hi) / 2)


class ColorTransition:
    """Animates a colour towards a target over a fixed duration."""

    def __init__(self, initial: Color, duration_ms: float = 800.0) -> None:
        self._duration_ms = duration_ms
        self._start: Color = initial
        self._target: Color = initial
        self._started_ms = 0.0

    @property
    def target(self) -> Color:
        return self._target

    def set_target(self, color: Color, now_ms: float) -> None:
        if color == self._target:
            return
        self._start = self.color_at(now_ms)
        self._target = color
        self._started_ms = now_ms

    def color_at(self, now_ms: float) -> Color:
        if self._duration_ms <= 0:
            return self._target
        progress = fast_out_slow_in((now_ms - self._started_ms) / self._duration_ms)
        return tuple(
            int(round(a + (b - a) * progress)) for a, b in zip(self._start, self._target)
        )  # type: ignore[return-value]


class StatusWindow:
    """OpenCV window showing the latest alert status.

    Reads the session's status channel; never writes to it.

    Usage:
        >>> window = StatusWindow(session.status)
        >>> while window.show(session.results.get()) != ord("q"):
        ...     pass
        >>> window.close()
    """

    def __init__(
        self,
        status: LatestValue[AlertState],
        title: str = "HandsOff",
        size: tuple[int, int] = (960, 540),
        transition_ms: float = 800.0,
        show_preview: bool = False,
    ) -> None:
        self._status = status
        self._title = title
        self._width, self._height = size
        self._show_preview = show_preview
        self._transition = ColorTransition(status_for(status.get()).color, transition_ms)
        self._opened = False

    def render(
        self,
        result: FrameResult | None = None,
        preview: np.ndarray | None = None,
        now_ms: float | None = None,
    ) -> np.ndarray:
        """Draw the status screen and return it as a BGR image."""
        now_ms = time.monotonic() * 1000.0 if now_ms is None else now_ms
        status = status_for(self._status.get())
        self._transition.set_target(status.color, now_ms)
        color = self._transition.color_at(now_ms)

        if self._show_preview and preview is not None:
            canvas = cv2.resize(preview, (self._width, self._height))
            canvas = (canvas * 0.4).astype(np.uint8)
        else:
            canvas = np.zeros((self._height, self._width, 3), dtype=np.uint8)

        if self._show_preview and result is not None:
            self._draw_landmarks(canvas, result)

        font = cv2.FONT_HERSHEY_SIMPLEX
        scale, thickness = (2.2, 5) if status.emphasized else (0.9, 1)
        padding = 32
        (text_w, text_h), _ = cv2.getTextSize(status.text, font, scale, thickness)
        if text_w > self._width - 2 * padding:
            scale *= (self._width - 2 * padding) / text_w
            (text_w, text_h), _ = cv2.getTextSize(status.text, font, scale, thickness)

        origin = ((self._width - text_w) // 2, (self._height + text_h) // 2)
        cv2.putText(canvas, status.text, origin, font, scale, color, thickness, cv2.LINE_AA)
        return canvas

    def show(self, result: FrameResult | None = None, preview: np.ndarray | None = None) -> int:
        """Render, display, and return the pressed key code (-1 if none)."""
        canvas = self.render(result, preview)
        cv2.imshow(self._title, canvas)
        self._opened = True
        return cv2.waitKey(15) & 0xFF

    def close(self) -> None:
        if self._opened:
            cv2.destroyWindow(self._title)
            self._opened = False

    def _draw_landmarks(self, canvas: np.ndarray, result: FrameResult) -> None:
        h, w = canvas.shape[:2]
        for hand in result.hands:
            for tip in hand.fingertips():
                cv2.circle(canvas, (int(tip.x * w), int(tip.y * h)), 6, (255, 160, 0), -1)
        if result.faces:
            mouth = mouth_center(result.faces[0])
            cv2.circle(canvas, (int(mouth.x * w), int(mouth.y * h)), 8, (255, 255, 255), 2)
