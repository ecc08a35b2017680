"""
Configuration settings for the LingoFriends adaptive core.

Uses Pydantic Settings for environment variable management with .env file support.
Every variable is prefixed with ``LINGO_`` (e.g. ``LINGO_WRONG_ANSWER_THRESHOLD=4``).
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from lingo_core.adaptive.thresholds import FilterThresholds
from lingo_core.adaptive.difficulty import CalibrationSettings
from lingo_core.adaptive.session import SessionSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LINGO_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Affective Filter Thresholds
    # ========================================
    wrong_answer_threshold: int = Field(
        default=3,
        description="Consecutive wrong answers before the filter counts as rising",
    )
    help_rate_threshold: float = Field(
        default=0.3,
        description="Help usage rate considered high (0-1)",
    )
    slow_response_multiplier: float = Field(
        default=2.0,
        description="Multiple of the average response time that counts as slow",
    )
    min_session_length_minutes: int = Field(
        default=5,
        description="Session length below which a quit is concerning",
    )
    inactivity_days_threshold: float = Field(
        default=3,
        description="Days without activity before motivation penalties start",
    )
    confidence_drop_threshold: float = Field(
        default=0.2,
        description="Confidence drop considered significant",
    )

    # ========================================
    # Difficulty Calibration (i+1)
    # ========================================
    drop_back_risk_threshold: float = Field(
        default=0.6,
        description="Filter risk above which i+1 falls back to i",
    )
    confidence_level_weight: float = Field(
        default=0.5,
        description="Level shift per unit of confidence away from 0.5",
    )
    filter_risk_level_weight: float = Field(
        default=0.3,
        description="Level reduction per unit of filter risk",
    )

    # ========================================
    # Session Behaviour
    # ========================================
    default_session_duration: float = Field(
        default=10,
        description="Default session length in minutes",
    )
    minutes_per_activity: float = Field(
        default=1.5,
        description="Estimated minutes spent per activity",
    )

    # ========================================
    # Engagement Decay (Tree Health)
    # ========================================
    grant_buffer_days: dict[str, int] = Field(
        default_factory=lambda: {
            "water_drop": 10,
            "sparkle": 5,
            "seed": 0,
            "ribbon": 0,
            "golden_flower": 15,
        },
        description="Buffer days granted per gift kind (owned by the economy service)",
    )

    # ========================================
    # Profile Service
    # ========================================
    profile_service_url: str = Field(
        default="http://127.0.0.1:8090",
        description="Base URL of the learner profile service",
    )
    profile_service_api_key: str | None = Field(
        default=None,
        description="Bearer token for the learner profile service",
    )
    profile_service_timeout: float = Field(
        default=5.0,
        description="Request timeout in seconds",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )

    # ========================================
    # Helper Methods
    # ========================================
    def filter_thresholds(self) -> FilterThresholds:
        """Build the affective filter thresholds from settings."""
        return FilterThresholds(
            wrong_answer_threshold=self.wrong_answer_threshold,
            help_rate_threshold=self.help_rate_threshold,
            slow_response_multiplier=self.slow_response_multiplier,
            min_session_length_minutes=self.min_session_length_minutes,
            inactivity_days_threshold=self.inactivity_days_threshold,
            confidence_drop_threshold=self.confidence_drop_threshold,
        )

    def calibration_settings(self) -> CalibrationSettings:
        """Build difficulty calibration settings."""
        return CalibrationSettings(
            drop_back_risk_threshold=self.drop_back_risk_threshold,
            confidence_weight=self.confidence_level_weight,
            filter_risk_weight=self.filter_risk_level_weight,
        )

    def session_settings(self) -> SessionSettings:
        """Build session life-cycle settings."""
        return SessionSettings(
            default_duration_minutes=self.default_session_duration,
            minutes_per_activity=self.minutes_per_activity,
        )

    def has_profile_service_auth(self) -> bool:
        """Check if the profile service credentials are configured."""
        return bool(self.profile_service_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
