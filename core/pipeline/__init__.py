"""Pipeline module — per-frame detection, worker thread, session lifecycle."""

from core.pipeline.pipeline import DetectionPipeline
from core.pipeline.session import MonitoringSession, SessionConfig
from core.pipeline.worker import LatestFrameWorker

__all__ = ["DetectionPipeline", "LatestFrameWorker", "MonitoringSession", "SessionConfig"]
