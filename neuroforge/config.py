"""
Configuration settings for the NeuroForge learning core.

Uses Pydantic Settings for environment variable management with .env file support.
Core components never read these settings implicitly: callers build explicit
config values (SM2Config, PlannerConfig) and pass them to constructors.
"""
from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from neuroforge.curriculum.planner import PlannerConfig
    from neuroforge.srs.scheduler import SM2Config


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NEUROFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///neuroforge.db",
        description="SQLAlchemy connection string for review and completion records",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # SM-2 Settings (spaced repetition)
    # ========================================
    srs_initial_easiness: float = Field(
        default=2.5,
        description="Easiness factor for items on first exposure",
    )
    srs_minimum_easiness: float = Field(
        default=1.3,
        ge=1.3,
        description="Floor applied to the easiness factor after every grade",
    )
    srs_initial_interval: float = Field(
        default=1.0,
        gt=0,
        description="Interval (days) after the first pass and after any failure",
    )
    srs_second_interval: float = Field(
        default=6.0,
        gt=0,
        description="Interval (days) after the second consecutive pass",
    )
    srs_mastery_repetitions: int = Field(
        default=8,
        description="Repetitions that must be exceeded before an item is mastered",
    )
    srs_mastery_interval_days: float = Field(
        default=60.0,
        description="Interval (days) that must be exceeded before an item is mastered",
    )
    srs_history_limit: int = Field(
        default=50,
        ge=1,
        description="Maximum review history entries kept per item",
    )
    srs_lapse_after_days: float = Field(
        default=0.0,
        ge=0,
        description="Minimum overdue days before a due item counts as lapsed",
    )

    # ========================================
    # Path Planner
    # ========================================
    planner_unlock_weight: float = Field(
        default=1.0,
        description="Weight of the number of units a candidate would unlock",
    )
    planner_affinity_weight: float = Field(
        default=0.5,
        description="Weight of recent activity in the same tag",
    )
    planner_progress_weight: float = Field(
        default=0.25,
        description="Weight of partial mastery on started units",
    )

    # ========================================
    # Sessions & Cache
    # ========================================
    session_max_items: int = Field(
        default=20,
        ge=1,
        description="Default review batch size",
    )
    max_conflict_retries: int = Field(
        default=3,
        ge=0,
        description="Retries on optimistic-lock conflicts before giving up",
    )
    recommendation_cache_size: int = Field(
        default=1024,
        ge=1,
        description="Process-wide bound on cached recommendation entries",
    )

    def sm2_config(self) -> SM2Config:
        """Build the explicit scheduler configuration."""
        from neuroforge.srs.scheduler import SM2Config

        return SM2Config(
            initial_easiness=self.srs_initial_easiness,
            minimum_easiness=self.srs_minimum_easiness,
            initial_interval=self.srs_initial_interval,
            second_interval=self.srs_second_interval,
            mastery_repetitions=self.srs_mastery_repetitions,
            mastery_interval_days=self.srs_mastery_interval_days,
            history_limit=self.srs_history_limit,
            lapse_after_days=self.srs_lapse_after_days,
        )

    def planner_config(self) -> PlannerConfig:
        """Build the explicit planner configuration."""
        from neuroforge.curriculum.planner import PlannerConfig

        return PlannerConfig(
            unlock_weight=self.planner_unlock_weight,
            affinity_weight=self.planner_affinity_weight,
            progress_weight=self.planner_progress_weight,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
