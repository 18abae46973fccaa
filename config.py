"""
Configuration settings for the recallforge scheduling engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from recallforge.core.fsrs import FSRS5_DEFAULT_WEIGHTS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum level for the CLI log sink",
    )

    # ========================================
    # FSRS Memory Model
    # ========================================
    fsrs_weights: list[float] = Field(
        default_factory=lambda: list(FSRS5_DEFAULT_WEIGHTS),
        description="FSRS weight vector (19 values, FSRS-5 layout)",
    )
    fsrs_request_retention: float = Field(
        default=0.9,
        gt=0.0,
        lt=1.0,
        description="Target recall probability at the scheduled due date",
    )
    fsrs_maximum_interval: int = Field(
        default=36500,
        ge=1,
        description="Longest interval the scheduler may assign (days)",
    )
    fsrs_stability_floor: float = Field(
        default=0.1,
        gt=0.0,
        description="Lowest stability any update may produce (days)",
    )

    # ========================================
    # Review Commit (anti-gaming consolidation)
    # ========================================
    consolidation_window_minutes: float = Field(
        default=20.0,
        ge=0.0,
        description="Repeat reviews inside this window count as one study event",
    )
    consolidation_penalty: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        description="Stability multiplier for an Again inside the window",
    )
    consolidation_retry_days: float = Field(
        default=1.0,
        gt=0.0,
        description="Due offset applied after an Again inside the window",
    )

    # ========================================
    # Rating Classifier (latency baselines)
    # ========================================
    baseline_durations_ms: dict[str, int] = Field(
        default_factory=lambda: {
            "mcq": 15000,       # read and decide
            "input": 25000,     # type the answer
            "match": 30000,     # connect pairs
            "sort": 30000,      # order items
            "socratic": 60000,  # think and write
        },
        description="Expected duration of a 'Good' answer per item type",
    )
    default_baseline_ms: int = Field(
        default=15000,
        gt=0,
        description="Baseline for item types missing from the table",
    )

    # ========================================
    # Planners
    # ========================================
    critical_stability_days: float = Field(
        default=2.0,
        description="Below this stability a reviewed concept is critical",
    )
    lifecycle_grace_minutes: float = Field(
        default=60.0,
        ge=0.0,
        description="Pages due within this window are already unlocked",
    )
    session_limit: int = Field(
        default=5,
        ge=1,
        description="Default size of an adaptive session",
    )
    expansion_stability_days: float = Field(
        default=20.0,
        description="Average cluster stability above which missions expand",
    )
    weekly_review_target: int = Field(
        default=10,
        ge=0,
        description="Reviews per week that unlock the weekly review early",
    )

    # ========================================
    # Helper Methods
    # ========================================
    def get_fsrs_config(self) -> dict[str, Any]:
        """Get FSRS parameters as a dictionary."""
        return {
            "weights": tuple(self.fsrs_weights),
            "request_retention": self.fsrs_request_retention,
            "maximum_interval": self.fsrs_maximum_interval,
            "stability_floor": self.fsrs_stability_floor,
        }

    def get_review_config(self) -> dict[str, Any]:
        """Get review-commit and rating configuration as a dictionary."""
        return {
            "consolidation_window_minutes": self.consolidation_window_minutes,
            "consolidation_penalty": self.consolidation_penalty,
            "consolidation_retry_days": self.consolidation_retry_days,
            "stability_floor": self.fsrs_stability_floor,
            "baselines": dict(self.baseline_durations_ms),
            "default_baseline_ms": self.default_baseline_ms,
        }

    def get_planner_config(self) -> dict[str, Any]:
        """Get session/mission/lifecycle planner configuration."""
        return {
            "critical_stability_days": self.critical_stability_days,
            "lifecycle_grace_minutes": self.lifecycle_grace_minutes,
            "session_limit": self.session_limit,
            "expansion_stability_days": self.expansion_stability_days,
            "weekly_review_target": self.weekly_review_target,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
