"""
Configuration settings for the practice session engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PRACTICE_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # General
    # ========================================
    log_level: str = Field(
        default="INFO",
        description="Logging level for the loguru stderr sink",
    )
    data_dir: Path = Field(
        default=Path.home() / ".practice",
        description="Root directory for local session data",
    )

    # ========================================
    # Durable Store
    # ========================================
    storage_backend: Literal["memory", "json", "sql"] = Field(
        default="json",
        description="Where session snapshots are persisted",
    )
    database_url: str = Field(
        default="",
        description="SQLAlchemy URL for the sql backend (defaults to sqlite in data_dir)",
    )

    # ========================================
    # Evaluation
    # ========================================
    evaluation_url: str | None = Field(
        default=None,
        description="Base URL of a remote evaluation service (keyword heuristic if unset)",
    )
    evaluation_api_key: str | None = Field(
        default=None,
        description="API key sent to the remote evaluation service",
    )
    evaluation_timeout_seconds: float = Field(
        default=30.0,
        description="Upper bound for a single answer evaluation",
    )
    evaluation_retry_attempts: int = Field(
        default=3,
        description="Retries for the remote evaluation service",
    )
    ideal_answer_words: int = Field(
        default=50,
        description="Word count at which the heuristic length score saturates",
    )

    # ========================================
    # Session Defaults
    # ========================================
    default_num_questions: int = Field(
        default=5,
        description="Questions per session when the caller does not say",
    )
    default_neutral_score: float = Field(
        default=0.5,
        description="Score given to non-blank answers when AI evaluation is off",
    )
    await_pending_evaluations: bool = Field(
        default=False,
        description="Whether ending a session waits for in-flight evaluations",
    )
    pending_evaluation_timeout_seconds: float = Field(
        default=10.0,
        description="How long end_session waits for in-flight evaluations",
    )
    low_score_threshold: float = Field(
        default=0.5,
        description="Answers scoring below this are reported as low scoring",
    )

    # ========================================
    # Session Manager
    # ========================================
    daily_goal: int = Field(
        default=1,
        description="Completed sessions per day the learner aims for",
    )
    default_session_length_minutes: int = Field(
        default=20,
        description="Preferred session length before any history exists",
    )
    auto_save_interval_minutes: int = Field(
        default=5,
        description="Auto-save cadence advertised to front ends",
    )

    @property
    def sessions_dir(self) -> Path:
        """Directory for JSON session snapshots."""
        return self.data_dir / "sessions"

    def get_database_url(self) -> str:
        """Get the SQLAlchemy URL for the sql backend."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'practice.db'}"

    def has_remote_evaluation(self) -> bool:
        """Check if a remote evaluation service is configured."""
        return bool(self.evaluation_url)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
