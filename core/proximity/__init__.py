"""Proximity module — fingertip-to-mouth distance check."""

from core.proximity.detector import ProximityDetector, detect, landmark_distance, mouth_center

__all__ = ["ProximityDetector", "detect", "landmark_distance", "mouth_center"]
