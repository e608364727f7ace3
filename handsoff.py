"""HandsOff CLI — live hand-near-mouth monitoring and one-off checks.

Usage:
    python handsoff.py run --camera 0
    python handsoff.py run --threshold 0.08 --preview
    python handsoff.py check photo.jpg
    python handsoff.py info
"""

from __future__ import annotations

import argparse
import sys

from loguru import logger
from pydantic import ValidationError

from app.config import Settings, settings
from app.logging_config import setup_logging
from core.exceptions import CameraUnavailableError, ProviderUnavailableError


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="handsoff",
        description="HandsOff — alerts you when your hand touches your mouth",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- run ----
    run_parser = subparsers.add_parser("run", help="Monitor the camera feed")
    run_parser.add_argument("--camera", type=int, default=None, help="Camera device index")
    run_parser.add_argument("--threshold", type=float, default=None, help="Proximity threshold (normalized)")
    run_parser.add_argument("--rotation", type=int, default=None, help="Clockwise frame rotation in degrees")
    run_parser.add_argument("--preview", action="store_true", help="Show the camera preview behind the status")
    run_parser.add_argument("--mute", action="store_true", help="Disable the alert sound")

    # ---- check ----
    check_parser = subparsers.add_parser("check", help="Run detection on a still image")
    check_parser.add_argument("image", type=str, help="Path to an image file")
    check_parser.add_argument("--threshold", type=float, default=None, help="Proximity threshold (normalized)")

    # ---- info ----
    subparsers.add_parser("info", help="Show system information")

    args = parser.parse_args(argv)
    try:
        config = _apply_overrides(settings, args)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        parser.error(f"invalid option value ({problems})")

    if args.command == "run":
        setup_logging(config)
        cmd_run(config, args)
    elif args.command == "check":
        setup_logging(config, log_to_file=False)
        cmd_check(config, args)
    elif args.command == "info":
        cmd_info()


def _apply_overrides(config: Settings, args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {}
    if getattr(args, "camera", None) is not None:
        overrides["camera_index"] = args.camera
    if getattr(args, "threshold", None) is not None:
        overrides["proximity_threshold"] = args.threshold
    if getattr(args, "rotation", None) is not None:
        overrides["camera_rotation"] = args.rotation
    if getattr(args, "preview", False):
        overrides["show_preview"] = True
    if getattr(args, "mute", False):
        overrides["sound_enabled"] = False
    if not overrides:
        return config
    # Re-validate so CLI values obey the same constraints as env values
    return Settings.model_validate({**config.model_dump(), **overrides})


def provider_factories(config: Settings):
    """Hand and face provider factories configured from the settings."""
    from core.vision.landmarkers import MediaPipeFaceLandmarker, MediaPipeHandLandmarker

    def make_hands() -> MediaPipeHandLandmarker:
        return MediaPipeHandLandmarker(
            config.hand_model_path,
            max_hands=config.max_hands,
            min_detection_confidence=config.min_detection_confidence,
            min_presence_confidence=config.min_presence_confidence,
            min_tracking_confidence=config.min_tracking_confidence,
        )

    def make_faces() -> MediaPipeFaceLandmarker:
        return MediaPipeFaceLandmarker(
            config.face_model_path,
            max_faces=config.max_faces,
            min_detection_confidence=config.min_detection_confidence,
            min_presence_confidence=config.min_presence_confidence,
            min_tracking_confidence=config.min_tracking_confidence,
        )

    return make_hands, make_faces


def build_session(config: Settings):
    """Create a MonitoringSession wired to MediaPipe, sounddevice and the settings."""
    from app.audio import AudioAlert
    from core.pipeline.session import MonitoringSession, SessionConfig
    from core.vision.preprocessor import PreprocessConfig

    session_config = SessionConfig(
        proximity_threshold=config.proximity_threshold,
        preprocess_config=PreprocessConfig(
            max_dimension=config.max_dimension,
            flip_horizontal=config.flip_horizontal,
        ),
    )
    make_hands, make_faces = provider_factories(config)

    def make_audio() -> AudioAlert:
        return AudioAlert(enabled=config.sound_enabled, volume=config.sound_volume)

    return MonitoringSession(session_config, make_hands, make_faces, make_audio)


def cmd_run(config: Settings, args: argparse.Namespace) -> None:
    """Run live monitoring until 'q' or Esc is pressed."""
    from app.camera import OpenCVFrameSource
    from app.display import StatusWindow
    from core.alert.channel import LatestValue
    from core.types import RawFrame
    from core.vision.preprocessor import FramePreprocessor, PreprocessConfig

    session = build_session(config)
    camera = OpenCVFrameSource(
        index=config.camera_index,
        width=config.camera_width,
        height=config.camera_height,
        rotation_degrees=config.camera_rotation,
    )
    window = StatusWindow(
        session.status,
        title=config.app_name,
        size=(config.window_width, config.window_height),
        transition_ms=config.color_transition_ms,
        show_preview=config.show_preview,
    )
    latest_raw: LatestValue[RawFrame | None] = LatestValue(None)
    preview_decoder = FramePreprocessor(
        PreprocessConfig(max_dimension=config.max_dimension, flip_horizontal=config.flip_horizontal)
    )

    def on_frame(raw: RawFrame) -> None:
        if config.show_preview:
            latest_raw.publish(raw)
        session.submit(raw)

    try:
        with session:
            camera.start(on_frame)
            logger.info("Monitoring... press 'q' to quit")
            while camera.is_running and session.worker is not None and session.worker.is_running:
                raw = latest_raw.get()
                preview = preview_decoder.decode(raw) if raw is not None else None
                key = window.show(session.results.get(), preview)
                if key in (ord("q"), 27):
                    break
    except ProviderUnavailableError as e:
        logger.error(f"Detection unavailable: {e}")
        sys.exit(1)
    except CameraUnavailableError as e:
        logger.error(f"Error starting camera: {e}")
        sys.exit(1)
    finally:
        camera.stop()
        window.close()


def cmd_check(config: Settings, args: argparse.Namespace) -> None:
    """Detect hands and face in a still image and report hand-near-mouth."""
    import cv2

    from core.proximity.detector import ProximityDetector, mouth_center

    image = cv2.imread(args.image)
    if image is None:
        logger.error(f"Cannot read image: {args.image}")
        sys.exit(1)

    try:
        make_hands, make_faces = provider_factories(config)
        with make_hands() as hand_provider, make_faces() as face_provider:
            hands = hand_provider.detect(image)
            faces = face_provider.detect(image)
    except ProviderUnavailableError as e:
        logger.error(f"Detection unavailable: {e}")
        sys.exit(1)

    detected = ProximityDetector(config.proximity_threshold).detect(hands, faces)

    print(f"\nHands: {len(hands)}  Faces: {len(faces)}")
    if faces:
        mouth = mouth_center(faces[0])
        print(f"Mouth center: ({mouth.x:.3f}, {mouth.y:.3f})")
    print(f"Hand near mouth: {'YES' if detected else 'no'} (threshold {config.proximity_threshold})")


def cmd_info() -> None:
    """Show system information."""
    import platform

    import cv2

    try:
        import mediapipe as mp
        mp_ver = mp.__version__
    except ImportError:
        mp_ver = "not installed"

    try:
        import sounddevice as sd
        audio = f"{sd.__version__} (default output: {sd.default.device[1]})"
    except OSError as e:
        audio = f"unavailable ({e})"

    print(f"""
✋ HandsOff — hand-near-mouth alerts
══════════════════════════════════════
  Python:       {platform.python_version()}
  Platform:     {platform.system()} {platform.machine()}
  OpenCV:       {cv2.__version__}
  MediaPipe:    {mp_ver}
  Audio:        {audio}
  Threshold:    {settings.proximity_threshold}
""")


if __name__ == "__main__":
    main()
