"""Tests for core.vision — preprocessor, MediaPipe landmark providers, model download."""

from __future__ import annotations

import urllib.request
from pathlib import Path
from types import SimpleNamespace

import cv2
import numpy as np
import pytest

from core.exceptions import FrameDecodeError, ProviderUnavailableError
from core.types import NUM_HAND_LANDMARKS, Handedness, PixelFormat, RawFrame
from core.vision import landmarkers
from core.vision.model_assets import HAND_LANDMARKER_URL, ensure_model
from core.vision.preprocessor import FramePreprocessor, PreprocessConfig


def _marked_frame(h: int = 100, w: int = 200) -> np.ndarray:
    """Black BGR frame with a white top-left quadrant."""
    frame = np.zeros((h, w, 3), dtype=np.uint8)
    frame[: h // 2, : w // 2] = 255
    return frame


class TestProcess:
    """Tests for FramePreprocessor.process on upright BGR frames."""

    def test_default_config(self, dummy_bgr_frame: np.ndarray) -> None:
        preprocessor = FramePreprocessor()
        result = preprocessor.process(dummy_bgr_frame)
        assert result.shape == (480, 640, 3)
        assert result.dtype == np.uint8

    def test_horizontal_flip(self) -> None:
        frame = np.zeros((100, 200, 3), dtype=np.uint8)
        frame[:, :100] = 255  # Left half white

        preprocessor = FramePreprocessor(PreprocessConfig(flip_horizontal=True))
        result = preprocessor.process(frame)

        # After flip, right half should be white
        assert result[:, 100:].mean() > 200
        assert result[:, :100].mean() < 50

    def test_no_flip(self) -> None:
        frame = np.zeros((100, 200, 3), dtype=np.uint8)
        frame[:, :100] = 255

        preprocessor = FramePreprocessor(PreprocessConfig(flip_horizontal=False))
        result = preprocessor.process(frame)

        assert result[:, :100].mean() > 200

    def test_max_dimension_downscale(self) -> None:
        frame = np.zeros((1080, 1920, 3), dtype=np.uint8)
        preprocessor = FramePreprocessor(PreprocessConfig(max_dimension=640))
        result = preprocessor.process(frame)

        assert max(result.shape[:2]) <= 640

    def test_fixed_target_size(self) -> None:
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        config = PreprocessConfig(target_width=320, target_height=240)
        result = FramePreprocessor(config).process(frame)

        assert result.shape == (240, 320, 3)

    def test_none_frame_raises(self) -> None:
        with pytest.raises(FrameDecodeError, match="None"):
            FramePreprocessor().process(None)

    def test_wrong_dims_raises(self) -> None:
        with pytest.raises(FrameDecodeError, match="BGR"):
            FramePreprocessor().process(np.zeros((100, 100), dtype=np.uint8))

    def test_empty_frame_raises(self) -> None:
        with pytest.raises(FrameDecodeError, match="empty"):
            FramePreprocessor().process(np.zeros((0, 0, 3), dtype=np.uint8))

    def test_decode_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            FramePreprocessor().process(None)


class TestDecode:
    """Tests for FramePreprocessor.decode on raw frames."""

    def test_bgr_passthrough(self, raw_frame: RawFrame, dummy_bgr_frame: np.ndarray) -> None:
        result = FramePreprocessor().decode(raw_frame)
        np.testing.assert_array_equal(result, dummy_bgr_frame)

    def test_bgr_from_bytes(self) -> None:
        frame = _marked_frame()
        raw = RawFrame(data=frame.tobytes(), width=200, height=100)
        np.testing.assert_array_equal(FramePreprocessor().decode(raw), frame)

    def test_rgb_is_converted(self) -> None:
        rgb = np.zeros((10, 20, 3), dtype=np.uint8)
        rgb[..., 0] = 255  # pure red in RGB
        raw = RawFrame(data=rgb, width=20, height=10, pixel_format=PixelFormat.RGB)
        result = FramePreprocessor().decode(raw)
        assert result[..., 2].min() == 255  # red lands in the last BGR channel
        assert result[..., 0].max() == 0

    @pytest.mark.parametrize("pixel_format", [PixelFormat.NV21, PixelFormat.I420])
    def test_yuv_roundtrip_gray(self, pixel_format: PixelFormat) -> None:
        w, h = 64, 48
        yuv = np.full((h * 3 // 2, w), 128, dtype=np.uint8)
        yuv[:h] = 200  # luma; neutral chroma
        raw = RawFrame(data=yuv.tobytes(), width=w, height=h, pixel_format=pixel_format)
        result = FramePreprocessor().decode(raw)
        assert result.shape == (h, w, 3)
        # Neutral chroma → gray pixels
        assert np.abs(result.astype(int) - result[..., :1].astype(int)).max() <= 2

    def test_nv21_matches_opencv(self) -> None:
        w, h = 32, 16
        yuv = np.random.default_rng(0).integers(0, 256, (h * 3 // 2, w), dtype=np.uint8)
        raw = RawFrame(data=yuv, width=w, height=h, pixel_format=PixelFormat.NV21)
        expected = cv2.cvtColor(yuv, cv2.COLOR_YUV2BGR_NV21)
        np.testing.assert_array_equal(FramePreprocessor().decode(raw), expected)

    def test_rotation_90_clockwise(self) -> None:
        frame = _marked_frame(100, 200)
        raw = RawFrame(data=frame, width=200, height=100, rotation_degrees=90)
        result = FramePreprocessor().decode(raw)
        assert result.shape == (200, 100, 3)
        # Top-left quadrant moves to the top-right after a clockwise turn
        assert result[:100, 50:].mean() > 200
        assert result[:100, :50].mean() < 50

    def test_rotation_270(self) -> None:
        frame = _marked_frame(100, 200)
        raw = RawFrame(data=frame, width=200, height=100, rotation_degrees=-90)
        result = FramePreprocessor().decode(raw)
        # Counter-clockwise turn: top-left quadrant moves to the bottom-left
        assert result[100:, :50].mean() > 200

    def test_rotation_180(self) -> None:
        frame = _marked_frame(100, 200)
        raw = RawFrame(data=frame, width=200, height=100, rotation_degrees=180)
        result = FramePreprocessor().decode(raw)
        assert result[50:, 100:].mean() > 200

    def test_unsupported_rotation_raises(self, raw_frame: RawFrame) -> None:
        bad = RawFrame(data=raw_frame.data, width=raw_frame.width, height=raw_frame.height, rotation_degrees=45)
        with pytest.raises(FrameDecodeError, match="rotation"):
            FramePreprocessor().decode(bad)

    def test_size_mismatch_raises(self) -> None:
        raw = RawFrame(data=b"\x00" * 10, width=20, height=10, pixel_format=PixelFormat.NV21)
        with pytest.raises(FrameDecodeError, match="bytes"):
            FramePreprocessor().decode(raw)

    def test_odd_yuv_dimensions_raise(self) -> None:
        raw = RawFrame(data=b"\x00" * 100, width=9, height=7, pixel_format=PixelFormat.I420)
        with pytest.raises(FrameDecodeError, match="even"):
            FramePreprocessor().decode(raw)

    def test_zero_size_raises(self) -> None:
        raw = RawFrame(data=b"", width=0, height=0)
        with pytest.raises(FrameDecodeError, match="empty"):
            FramePreprocessor().decode(raw)

    def test_none_raises(self) -> None:
        with pytest.raises(FrameDecodeError):
            FramePreprocessor().decode(None)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Landmark providers (MediaPipe task replaced by a scripted stand-in)
# ---------------------------------------------------------------------------

def _points(n: int, x: float = 0.5, y: float = 0.5, z: float | None = None) -> list[SimpleNamespace]:
    return [SimpleNamespace(x=x, y=y, z=z) for _ in range(n)]


class ScriptedTask:
    """Mimics a MediaPipe Tasks landmarker: detect() returns a fixed result."""

    def __init__(self, result: SimpleNamespace) -> None:
        self.result = result
        self.detect_calls = 0
        self.close_calls = 0

    def detect(self, image) -> SimpleNamespace:
        self.detect_calls += 1
        return self.result

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def model_file(tmp_path: Path) -> Path:
    path = tmp_path / "landmarker.task"
    path.write_bytes(b"model")
    return path


def _install(monkeypatch: pytest.MonkeyPatch, task_cls: type, task: ScriptedTask) -> None:
    monkeypatch.setattr(task_cls, "create_from_options", lambda options: task)


class TestHandLandmarker:
    def test_converts_result(
        self, monkeypatch: pytest.MonkeyPatch, model_file: Path, dummy_bgr_frame: np.ndarray
    ) -> None:
        task = ScriptedTask(SimpleNamespace(
            hand_landmarks=[_points(NUM_HAND_LANDMARKS, 0.25, 0.75), _points(NUM_HAND_LANDMARKS, z=0.1)],
            handedness=[[SimpleNamespace(category_name="Left", score=0.93)]],
        ))
        _install(monkeypatch, landmarkers.HandLandmarker, task)

        with landmarkers.MediaPipeHandLandmarker(model_file) as provider:
            hands = provider.detect(dummy_bgr_frame)

        assert len(hands) == 2
        first, second = hands
        assert first.handedness is Handedness.LEFT
        assert first.confidence == pytest.approx(0.93)
        assert first.landmarks[0].x == 0.25 and first.landmarks[0].y == 0.75
        assert first.landmarks[0].z == 0.0  # missing z
        # No handedness entry for the second hand
        assert second.handedness is Handedness.UNKNOWN
        assert second.confidence == 0.0
        assert second.landmarks[0].z == pytest.approx(0.1)

    def test_right_label(
        self, monkeypatch: pytest.MonkeyPatch, model_file: Path, dummy_bgr_frame: np.ndarray
    ) -> None:
        task = ScriptedTask(SimpleNamespace(
            hand_landmarks=[_points(NUM_HAND_LANDMARKS)],
            handedness=[[SimpleNamespace(category_name="Right", score=0.8)]],
        ))
        _install(monkeypatch, landmarkers.HandLandmarker, task)
        provider = landmarkers.MediaPipeHandLandmarker(model_file)
        assert provider.detect(dummy_bgr_frame)[0].handedness is Handedness.RIGHT
        provider.close()

    def test_no_hands(
        self, monkeypatch: pytest.MonkeyPatch, model_file: Path, dummy_bgr_frame: np.ndarray
    ) -> None:
        task = ScriptedTask(SimpleNamespace(hand_landmarks=[], handedness=[]))
        _install(monkeypatch, landmarkers.HandLandmarker, task)
        with landmarkers.MediaPipeHandLandmarker(model_file) as provider:
            assert provider.detect(dummy_bgr_frame) == []

    def test_closed_provider_returns_nothing(
        self, monkeypatch: pytest.MonkeyPatch, model_file: Path, dummy_bgr_frame: np.ndarray
    ) -> None:
        task = ScriptedTask(SimpleNamespace(
            hand_landmarks=[_points(NUM_HAND_LANDMARKS)], handedness=[],
        ))
        _install(monkeypatch, landmarkers.HandLandmarker, task)
        provider = landmarkers.MediaPipeHandLandmarker(model_file)
        provider.close()
        provider.close()

        assert provider.detect(dummy_bgr_frame) == []
        assert task.close_calls == 1
        assert task.detect_calls == 0

    def test_init_failure_is_provider_unavailable(
        self, monkeypatch: pytest.MonkeyPatch, model_file: Path
    ) -> None:
        def broken(options):
            raise RuntimeError("unsupported model")

        monkeypatch.setattr(landmarkers.HandLandmarker, "create_from_options", broken)
        with pytest.raises(ProviderUnavailableError, match="unsupported model"):
            landmarkers.MediaPipeHandLandmarker(model_file)

    def test_missing_model_is_provider_unavailable(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        def offline(*args, **kwargs):
            raise OSError("network unreachable")

        monkeypatch.setattr(urllib.request, "urlopen", offline)
        with pytest.raises(ProviderUnavailableError):
            landmarkers.MediaPipeHandLandmarker(tmp_path / "absent.task")


class TestFaceLandmarker:
    def test_converts_result(
        self, monkeypatch: pytest.MonkeyPatch, model_file: Path, dummy_bgr_frame: np.ndarray
    ) -> None:
        task = ScriptedTask(SimpleNamespace(face_landmarks=[_points(478, 0.4, 0.6)]))
        _install(monkeypatch, landmarkers.FaceLandmarker, task)

        with landmarkers.MediaPipeFaceLandmarker(model_file) as provider:
            faces = provider.detect(dummy_bgr_frame)

        assert len(faces) == 1
        assert len(faces[0].landmarks) == 478
        assert faces[0].landmarks[13].x == 0.4
        assert faces[0].landmarks[13].z == 0.0

    def test_closed_provider_returns_nothing(
        self, monkeypatch: pytest.MonkeyPatch, model_file: Path, dummy_bgr_frame: np.ndarray
    ) -> None:
        task = ScriptedTask(SimpleNamespace(face_landmarks=[_points(478)]))
        _install(monkeypatch, landmarkers.FaceLandmarker, task)
        provider = landmarkers.MediaPipeFaceLandmarker(model_file)
        provider.close()
        provider.close()

        assert provider.detect(dummy_bgr_frame) == []
        assert task.close_calls == 1

    def test_init_failure_is_provider_unavailable(
        self, monkeypatch: pytest.MonkeyPatch, model_file: Path
    ) -> None:
        def broken(options):
            raise RuntimeError("no GPU delegate")

        monkeypatch.setattr(landmarkers.FaceLandmarker, "create_from_options", broken)
        with pytest.raises(ProviderUnavailableError, match="face landmarker"):
            landmarkers.MediaPipeFaceLandmarker(model_file)


# ---------------------------------------------------------------------------
# Model download
# ---------------------------------------------------------------------------

class FakeResponse:
    def __init__(self, payload: bytes) -> None:
        self._payload = payload

    def read(self) -> bytes:
        return self._payload

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *args) -> None:
        pass


class TestEnsureModel:
    def test_existing_file_is_not_downloaded(
        self, monkeypatch: pytest.MonkeyPatch, model_file: Path
    ) -> None:
        def unexpected(*args, **kwargs):
            raise AssertionError("should not download")

        monkeypatch.setattr(urllib.request, "urlopen", unexpected)
        assert ensure_model(model_file, HAND_LANDMARKER_URL) == model_file

    def test_downloads_missing_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        requested: list[str] = []

        def fake_urlopen(url, **kwargs):
            requested.append(url)
            return FakeResponse(b"task-bytes")

        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
        target = tmp_path / "models" / "hand_landmarker.task"

        path = ensure_model(target, HAND_LANDMARKER_URL)

        assert path == target
        assert target.read_bytes() == b"task-bytes"
        assert requested == [HAND_LANDMARKER_URL]
        assert not (tmp_path / "models" / "hand_landmarker.task.part").exists()

    def test_failed_download_cleans_up(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        class BrokenResponse(FakeResponse):
            def read(self) -> bytes:
                (tmp_path / "hand_landmarker.task.part").write_bytes(b"half")
                raise OSError("connection reset")

        monkeypatch.setattr(urllib.request, "urlopen", lambda url, **kwargs: BrokenResponse(b""))
        target = tmp_path / "hand_landmarker.task"

        with pytest.raises(FileNotFoundError, match="download"):
            ensure_model(target, HAND_LANDMARKER_URL)

        assert not target.exists()
        assert not (tmp_path / "hand_landmarker.task.part").exists()
