from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    log_dir: Path = Path("logs")
    log_level: Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"] = "INFO"
    log_max_size_mb: int = 10
    ocr_language: str = "en"
    ocr_confidence_threshold: float = 0.5
    ocr_use_gpu: bool = False
    # OCR safety limits
    ocr_max_image_dimension: int = 3000  # Max dimension (width or height) for OCR processing
    ocr_det_limit_side_len: int = 2000   # PaddleOCR detection limit
    # OCR Engine Pool Settings
    ocr_pool_size: int = 2  # Number of engines in pool (1-4 recommended)
    ocr_pool_timeout: float = 30.0  # Max seconds to wait for available engine
    # Region fan-out
    recognition_workers: int = 4
    recognition_timeout_seconds: float = 30.0  # Whole batch deadline, 0 disables
    # Region catalog
    roi_catalog_file: Optional[Path] = Path("config/roi_catalog.json")
    flight_layout: str = "dashboard"
    crew_layout: str = "crew_list"
    compact_crew_layout: str = "dashboard_crew"
    # Scoring and date search
    confidence_high_threshold: float = 0.8
    confidence_medium_threshold: float = 0.5
    date_inference_max_years_back: int = 2
    # Export
    export_application: str = "FlightCapture"
    export_version: str = "1.0"
    export_service_id: str = "com.flightcapture.app"
    flight_key_length: int = 16
    fallback_flight_number: str = "TEST123"
    fallback_departure: str = "VHHH"
    fallback_arrival: str = "OERK"
    fallback_aircraft_id: str = "B-TEST"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @field_validator("log_dir", mode="before")
    def _ensure_path(cls, value: str | Path) -> Path:
        return value if isinstance(value, Path) else Path(value)

    @field_validator("roi_catalog_file", mode="before")
    def _ensure_catalog_path(cls, value: str | Path | None) -> Optional[Path]:
        if value is None or value == "":
            return None
        return value if isinstance(value, Path) else Path(value)

    @field_validator("ocr_confidence_threshold", "confidence_high_threshold", "confidence_medium_threshold")
    def _ensure_unit_interval(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("confidence thresholds must be between 0.0 and 1.0")
        return value

    @field_validator("ocr_pool_size", "recognition_workers")
    def _ensure_positive_workers(cls, value: int) -> int:
        if value < 1:
            raise ValueError("worker and pool sizes must be at least 1")
        return value

    @field_validator("ocr_pool_timeout", "recognition_timeout_seconds")
    def _ensure_non_negative_timeout(cls, value: float) -> float:
        if value < 0:
            raise ValueError("timeouts must not be negative")
        return value

    @field_validator("date_inference_max_years_back")
    def _ensure_years_back(cls, value: int) -> int:
        if value < 0:
            raise ValueError("date_inference_max_years_back must not be negative")
        return value

    @field_validator("flight_key_length")
    def _ensure_key_length(cls, value: int) -> int:
        # sha256 hex digest has 64 characters
        if not 1 <= value <= 64:
            raise ValueError("flight_key_length must be between 1 and 64")
        return value

    @model_validator(mode="after")
    def _ensure_threshold_order(self) -> "Settings":
        if self.confidence_medium_threshold > self.confidence_high_threshold:
            raise ValueError(
                "confidence_medium_threshold must not exceed confidence_high_threshold"
            )
        return self
