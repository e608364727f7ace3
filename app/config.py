"""HandsOff — Centralised Settings (Pydantic v2).

Single source of truth for all configuration.
Loads from .env, HANDSOFF_* environment variables, or defaults.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.types import DEFAULT_PROXIMITY_THRESHOLD


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="HANDSOFF_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────
    app_name: str = "HandsOff"
    app_version: str = "0.1.0"
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_dir: str = "logs"

    # ── Detection ────────────────────────────────────────────
    proximity_threshold: float = Field(default=DEFAULT_PROXIMITY_THRESHOLD, gt=0.0)
    max_hands: int = Field(default=2, ge=1)
    max_faces: int = Field(default=1, ge=1)
    min_detection_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    min_presence_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    min_tracking_confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    # ── Model paths ──────────────────────────────────────────
    hand_model_path: str = "models/hand_landmarker.task"
    face_model_path: str = "models/face_landmarker.task"

    # ── Camera ───────────────────────────────────────────────
    camera_index: int = 0
    camera_width: int = 1280
    camera_height: int = 720
    camera_rotation: int = 0
    flip_horizontal: bool = True
    max_dimension: int = Field(default=1280, gt=0)

    # ── Alert ────────────────────────────────────────────────
    sound_enabled: bool = True
    sound_volume: float = Field(default=0.5, ge=0.0, le=1.0)

    # ── Display ──────────────────────────────────────────────
    show_preview: bool = False
    color_transition_ms: int = Field(default=800, ge=0)
    window_width: int = 960
    window_height: int = 540

    @field_validator("camera_rotation")
    @classmethod
    def _check_rotation(cls, v: int) -> int:
        if v % 90 != 0:
            raise ValueError(f"camera_rotation must be a multiple of 90, got {v}")
        return v % 360

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent


settings = Settings()
