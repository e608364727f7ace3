"""Monitoring session lifecycle.

A session acquires the landmark providers, the audio sink and the frame
worker on start, and releases all of them on stop, on every exit path.
The alert state returns to MONITORING whenever the session stops.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from core.alert.channel import LatestValue
from core.alert.state_machine import AlertStateMachine
from core.pipeline.pipeline import DetectionPipeline
from core.pipeline.worker import LatestFrameWorker
from core.proximity.detector import ProximityDetector
from core.types import (
    DEFAULT_PROXIMITY_THRESHOLD,
    AlertState,
    AudioSink,
    FaceLandmarkProvider,
    FrameResult,
    HandLandmarkProvider,
    RawFrame,
)
from core.vision.preprocessor import FramePreprocessor, PreprocessConfig


@dataclass
class SessionConfig:
    """Configuration for a monitoring session.

    Attributes:
        proximity_threshold: Fingertip-to-mouth distance that counts as touching.
        preprocess_config: Frame preprocessing settings.
        stop_timeout_s: How long stop() waits for the in-flight frame.
    """
    proximity_threshold: float = DEFAULT_PROXIMITY_THRESHOLD
    preprocess_config: PreprocessConfig = field(default_factory=PreprocessConfig)
    stop_timeout_s: float = 5.0


class MonitoringSession:
    """Owns one start/stop cycle of hand-near-mouth monitoring.

    Usage:
        >>> session = MonitoringSession(SessionConfig(), make_hands, make_faces, make_audio)
        >>> with session:
        ...     camera.start(session.submit)
        ...     print(session.status.get())
    """

    def __init__(
        self,
        config: SessionConfig | None,
        hand_factory: Callable[[], HandLandmarkProvider],
        face_factory: Callable[[], FaceLandmarkProvider],
        audio_factory: Callable[[], AudioSink],
    ) -> None:
        self._config = config or SessionConfig()
        self._hand_factory = hand_factory
        self._face_factory = face_factory
        self._audio_factory = audio_factory
        self._detector = ProximityDetector(self._config.proximity_threshold)
        self._preprocessor = FramePreprocessor(self._config.preprocess_config)
        self._status: LatestValue[AlertState] = LatestValue(AlertState.MONITORING)
        self._results: LatestValue[FrameResult | None] = LatestValue(None)
        self._machine: AlertStateMachine | None = None
        self._pipeline: DetectionPipeline | None = None
        self._worker: LatestFrameWorker[RawFrame] | None = None
        self._stack: ExitStack | None = None

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._stack is not None

    @property
    def status(self) -> LatestValue[AlertState]:
        """Latest alert state, for the presentation layer."""
        return self._status

    @property
    def results(self) -> LatestValue[FrameResult | None]:
        """Latest processed frame result."""
        return self._results

    @property
    def worker(self) -> LatestFrameWorker[RawFrame] | None:
        return self._worker

    @property
    def pipeline(self) -> DetectionPipeline | None:
        return self._pipeline

    def start(self) -> None:
        """Acquire all session resources and start the worker.

        Raises:
            ProviderUnavailableError: If a landmark provider cannot be created.
                Anything acquired before the failure is released.
        """
        if self._stack is not None:
            return

        logger.info("Starting monitoring session...")
        stack = ExitStack()
        try:
            hands = self._hand_factory()
            stack.callback(hands.close)
            faces = self._face_factory()
            stack.callback(faces.close)
            audio = self._audio_factory()
            stack.callback(audio.close)

            # Fresh per run, so a frame left over from a previous run has no
            # way into this run's state
            self._machine = AlertStateMachine(self._status)
            self._pipeline = DetectionPipeline(
                self._preprocessor, hands, faces, self._detector, self._machine, audio,
                results=self._results,
            )
            stack.callback(self._pipeline.close)
            self._worker = LatestFrameWorker(self._pipeline.process, name="detection-worker")
            self._worker.start()
            stack.callback(self._worker.stop, self._config.stop_timeout_s)
        except BaseException:
            self._pipeline = None
            self._worker = None
            self._machine = None
            stack.close()
            raise

        self._stack = stack
        logger.info(f"Session started | threshold={self._detector.threshold}")

    def stop(self) -> None:
        """Release all session resources and reset the alert state.

        The pipeline is closed right after the worker is asked to stop, so a
        frame that outlives ``stop_timeout_s`` is discarded instead of
        reaching the alert state, the audio sink or the results.
        """
        stack, self._stack = self._stack, None
        if stack is None:
            return

        worker, machine = self._worker, self._machine
        try:
            stack.close()
        finally:
            self._pipeline = None
            self._worker = None
            self._machine = None
            if machine is not None:
                machine.reset()
            self._results.publish(None)
            if worker is not None:
                logger.info(
                    f"Session stopped | frames={worker.frames_handled} "
                    f"dropped={worker.frames_dropped}"
                )

    def submit(self, raw: RawFrame) -> bool:
        """Hand a frame to the worker; never blocks. Returns False if not running."""
        worker = self._worker
        if worker is None:
            return False
        return worker.submit(raw)

    def __enter__(self) -> MonitoringSession:
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()
