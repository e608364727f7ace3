"""Vision module — frame decoding and MediaPipe landmark providers.

The MediaPipe providers live in ``core.vision.landmarkers`` and are imported
on demand so that decoding can be used without loading MediaPipe.
"""

from core.vision.preprocessor import FramePreprocessor, PreprocessConfig

__all__ = ["FramePreprocessor", "PreprocessConfig"]
