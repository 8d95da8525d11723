"""
Exam Guard Configuration Settings

All proctoring thresholds live here so the monitor can be tuned per
deployment without touching the state machine.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Configuration for the exam integrity service."""

    # API Settings
    APP_NAME: str = "Exam Guard Service"
    DEBUG: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False
    LOG_DIR: str = "logs"

    # Exam Settings
    EXAM_DURATION_SECONDS: int = 30
    MAX_WARNINGS: int = 5

    # Gaze heuristic: nose offset allowed as a fraction of eye span
    GAZE_DEVIATION_THRESHOLD: float = 0.3

    # Face detector options (fixed per deployment)
    DETECTOR_INPUT_SIZE: int = 512
    DETECTOR_SCORE_THRESHOLD: float = 0.2
    SHAPE_PREDICTOR_PATH: Optional[str] = None

    # Timers
    POLL_INTERVAL_SECONDS: float = 0.5
    # Uploaded frames older than this are treated as not ready
    FRAME_MAX_AGE_SECONDS: float = 2.0
    COUNTDOWN_INTERVAL_SECONDS: float = 1.0
    ALLOW_OVERLAPPING_DETECTIONS: bool = False

    # Violation log persistence
    LOG_STORE_KEY: str = "examLogs"
    LOG_STORE_BACKEND: str = "memory"  # "memory" or "redis"
    LOG_STORE_MAX_BYTES: Optional[int] = None
    REDIS_URL: str = "redis://localhost:6379/0"

    # Video
    CAMERA_INDEX: int = 0
    SNAPSHOT_JPEG_QUALITY: int = 90

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()
