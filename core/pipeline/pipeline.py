"""Per-frame detection pipeline.

Orchestrates the full flow for one frame: raw frame → decoding →
hand + face landmarks → proximity check → alert state step → alert sound
on a rising edge.
"""

from __future__ import annotations

import time
from threading import Lock

from loguru import logger

from core.alert.channel import LatestValue
from core.alert.state_machine import AlertStateMachine
from core.exceptions import FrameDecodeError
from core.proximity.detector import ProximityDetector
from core.types import (
    AudioSink,
    FaceLandmarkProvider,
    FrameResult,
    HandLandmarkProvider,
    RawFrame,
)
from core.vision.preprocessor import FramePreprocessor


class DetectionPipeline:
    """Runs decode → detect → advance for one frame at a time.

    A single worker owns the pipeline and its state machine. Once ``close()``
    returns, a frame still in flight is discarded: it no longer steps the
    state machine, plays the sound or publishes a result.

    Usage:
        >>> pipeline = DetectionPipeline(preprocessor, hands, faces, ProximityDetector(), machine, audio)
        >>> result = pipeline.process(raw_frame)
        >>> if result is not None:
        ...     print(result.state, f"{result.inference_time_ms:.1f}ms")
    """

    def __init__(
        self,
        preprocessor: FramePreprocessor,
        hand_provider: HandLandmarkProvider,
        face_provider: FaceLandmarkProvider,
        detector: ProximityDetector,
        state_machine: AlertStateMachine,
        audio: AudioSink,
        results: LatestValue[FrameResult | None] | None = None,
    ) -> None:
        self._preprocessor = preprocessor
        self._hands = hand_provider
        self._faces = face_provider
        self._detector = detector
        self._machine = state_machine
        self._audio = audio
        self._results = results
        self._lock = Lock()
        self._closed = False
        self._frames_processed = 0
        self._frames_skipped = 0

    @property
    def state_machine(self) -> AlertStateMachine:
        return self._machine

    @property
    def frames_processed(self) -> int:
        return self._frames_processed

    @property
    def frames_skipped(self) -> int:
        return self._frames_skipped

    def process(self, raw: RawFrame) -> FrameResult | None:
        """Process a single raw frame through the full pipeline.

        Args:
            raw: Frame as delivered by the frame source.

        Returns:
            FrameResult for the frame, or None if the frame could not be
            decoded or the pipeline was closed meanwhile (the alert state
            is left unchanged).
        """
        t_start = time.perf_counter()

        try:
            image = self._preprocessor.decode(raw)
        except FrameDecodeError as e:
            self._frames_skipped += 1
            logger.debug(f"Skipping frame: {e}")
            return None

        hands = self._hands.detect(image)
        faces = self._faces.detect(image)
        detected = self._detector.detect(hands, faces)

        with self._lock:
            if self._closed:
                logger.debug("Discarding frame finished after close")
                return None

            transition = self._machine.feed(detected)
            if transition.should_play_sound:
                self._audio.play_once()

            self._frames_processed += 1
            inference_ms = (time.perf_counter() - t_start) * 1000.0

            result = FrameResult(
                hands=hands,
                faces=faces,
                detected=detected,
                state=transition.state,
                sound_triggered=transition.should_play_sound,
                timestamp_ms=raw.timestamp_ms or time.time() * 1000.0,
                inference_time_ms=inference_ms,
            )
            if self._results is not None:
                self._results.publish(result)
        return result

    @property
    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop any later or in-flight frame from touching state, sound or results.

        Waits for a state step already underway to finish. Idempotent.
        """
        with self._lock:
            self._closed = True
