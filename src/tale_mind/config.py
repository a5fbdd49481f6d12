"""Tunable constants. Read from the environment (TALE_MIND_*) or a .env file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TALE_MIND_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Similarity thresholds: duplicate, auto-consolidation, candidate scan
    duplicate_threshold: float = Field(0.9, ge=0.0, le=1.0)
    auto_consolidate_threshold: float = Field(0.6, ge=0.0, le=1.0)
    candidate_threshold: float = Field(0.7, ge=0.0, le=1.0)
    auto_consolidate_min_matches: int = Field(2, ge=1)

    # Capacity and decay
    max_active_memories: int = Field(50, ge=1)
    recent_access_days: float = 7.0
    same_period_days: float = 7.0
    decay_window_days: float = 30.0
    decay_archive_factor: float = 0.5

    # Story experience
    learning_moment_experience: float = Field(2.0, gt=0.0)
    word_experience: float = Field(0.5, gt=0.0)

    database_path: Path = Path("tale_mind.db")
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
