"""MediaPipe Tasks model assets (.task files), downloaded on first use."""

from __future__ import annotations

import ssl
import urllib.request
from pathlib import Path

from loguru import logger

HAND_LANDMARKER_URL = (
    "https://storage.googleapis.com/mediapipe-models/"
    "hand_landmarker/hand_landmarker/float16/latest/hand_landmarker.task"
)
FACE_LANDMARKER_URL = (
    "https://storage.googleapis.com/mediapipe-models/"
    "face_landmarker/face_landmarker/float16/latest/face_landmarker.task"
)


def ensure_model(model_path: str | Path, url: str, timeout_s: float = 30.0) -> Path:
    """Return ``model_path``, downloading it from ``url`` if it is missing.

    Raises:
        FileNotFoundError: If the model is missing and the download failed.
    """
    path = Path(model_path)
    if path.exists():
        return path

    path.parent.mkdir(parents=True, exist_ok=True)
    partial = path.with_suffix(path.suffix + ".part")
    logger.info(f"Downloading model {path.name} from {url}")

    try:
        ctx = ssl.create_default_context()
        with urllib.request.urlopen(url, context=ctx, timeout=timeout_s) as response:
            partial.write_bytes(response.read())
    except OSError as e:
        partial.unlink(missing_ok=True)
        raise FileNotFoundError(
            f"Model not found at {path} and download from {url} failed: {e}"
        ) from e

    partial.replace(path)
    logger.info(f"Model saved: {path} ({path.stat().st_size / 1e6:.1f} MB)")
    return path
