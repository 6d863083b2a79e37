"""
Session manager data model.

History entries are archival and never edited after they are written.
Analytics are derived wholesale from history; recommendations are
regenerated on demand and never persisted.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from src.core.types import (
    ContentType,
    FinalStats,
    SessionConfig,
    SessionStatus,
    known_fields,
    parse_datetime,
)


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def completion_percentage(current_index: int, total_items: int) -> int:
    return round(current_index / total_items * 100) if total_items > 0 else 0


# =============================================================================
# Active session and history
# =============================================================================


@dataclass
class ActiveProgress:
    current_index: int = 0
    total_items: int = 0
    completion_percentage: int = 0


@dataclass
class ActiveSessionInfo:
    """Coordination record for the single running session."""

    id: str
    type: ContentType
    config: SessionConfig
    started_at: datetime
    last_activity_at: datetime
    status: SessionStatus = SessionStatus.ACTIVE
    progress: ActiveProgress = field(default_factory=ActiveProgress)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "config": self.config.model_dump(mode="json"),
            "started_at": self.started_at.isoformat(),
            "last_activity_at": self.last_activity_at.isoformat(),
            "status": self.status.value,
            "progress": asdict(self.progress),
        }

    @classmethod
    def from_dict(cls, data: dict) -> ActiveSessionInfo:
        return cls(
            id=data["id"],
            type=ContentType(data["type"]),
            config=SessionConfig.model_validate(data.get("config", {})),
            started_at=parse_datetime(data["started_at"]),
            last_activity_at=parse_datetime(data.get("last_activity_at") or data["started_at"]),
            status=SessionStatus(data.get("status", "active")),
            progress=ActiveProgress(**known_fields(ActiveProgress, data.get("progress", {}))),
        )


@dataclass
class SessionOutcome:
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass
class SessionHistoryEntry:
    """Archived record of one finished session."""

    id: str
    type: ContentType
    course_id: str
    started_at: datetime
    completed_at: datetime | None
    status: SessionStatus
    config: SessionConfig
    final_stats: FinalStats
    performance: SessionOutcome = field(default_factory=SessionOutcome)

    @property
    def duration_minutes(self) -> float | None:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds() / 60

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "course_id": self.course_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "status": self.status.value,
            "config": self.config.model_dump(mode="json"),
            "final_stats": self.final_stats.to_dict(),
            "performance": asdict(self.performance),
        }

    @classmethod
    def from_dict(cls, data: dict) -> SessionHistoryEntry:
        return cls(
            id=data["id"],
            type=ContentType(data["type"]),
            course_id=data.get("course_id", ""),
            started_at=parse_datetime(data["started_at"]),
            completed_at=parse_datetime(data.get("completed_at")),
            status=SessionStatus(data.get("status", "completed")),
            config=SessionConfig.model_validate(data.get("config", {})),
            final_stats=FinalStats.from_dict(data.get("final_stats", {})),
            performance=SessionOutcome(**known_fields(SessionOutcome, data.get("performance", {}))),
        )


@dataclass
class HistoryFilter:
    """Selects history entries by type and/or start time range (inclusive)."""

    type: ContentType | None = None
    start: datetime | None = None
    end: datetime | None = None

    def matches(self, entry: SessionHistoryEntry) -> bool:
        if self.type is not None and entry.type != self.type:
            return False
        if self.start is not None and entry.started_at < self.start:
            return False
        if self.end is not None and entry.started_at > self.end:
            return False
        return True


# =============================================================================
# Analytics
# =============================================================================


@dataclass
class TypeBreakdown:
    count: int = 0
    average_accuracy: float = 0.0
    average_score: float = 0.0
    total_time_ms: int = 0
    preferred_difficulty: str = "mixed"


@dataclass
class LearningPatterns:
    most_productive_hour: int = 14
    preferred_session_length: int = 20  # minutes
    strongest_topics: list[str] = field(default_factory=list)
    weakest_topics: list[str] = field(default_factory=list)
    improvement_trend: float = 0.0  # positive = improving


@dataclass
class Goals:
    daily_session_target: int = 1
    current_streak: int = 0
    longest_streak: int = 0
    weekly_progress: float = 0.0  # 0-100


def empty_type_breakdown() -> dict[str, TypeBreakdown]:
    return {t.value: TypeBreakdown() for t in ContentType}


@dataclass
class CrossSessionAnalytics:
    """Analytics derived from the full session history."""

    total_sessions: int = 0
    total_time_ms: int = 0
    average_session_length: float = 0.0  # minutes
    session_type_breakdown: dict[str, TypeBreakdown] = field(default_factory=empty_type_breakdown)
    learning_patterns: LearningPatterns = field(default_factory=LearningPatterns)
    goals: Goals = field(default_factory=Goals)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> CrossSessionAnalytics:
        return cls(
            total_sessions=data.get("total_sessions", 0),
            total_time_ms=data.get("total_time_ms", 0),
            average_session_length=data.get("average_session_length", 0.0),
            session_type_breakdown={
                k: TypeBreakdown(**known_fields(TypeBreakdown, v))
                for k, v in data.get("session_type_breakdown", {}).items()
            } or empty_type_breakdown(),
            learning_patterns=LearningPatterns(
                **known_fields(LearningPatterns, data.get("learning_patterns", {}))
            ),
            goals=Goals(**known_fields(Goals, data.get("goals", {}))),
        )


@dataclass
class GoalProgress:
    completed: int
    target: int
    percentage: float


# =============================================================================
# Recommendations and preferences
# =============================================================================


@dataclass
class Recommendation:
    """A suggested next session."""

    type: ContentType
    reason: str
    config: SessionConfig
    estimated_duration: int  # minutes
    priority: Priority
    benefits: list[str] = field(default_factory=list)


class ReminderSettings(BaseModel):
    enabled: bool = False
    daily_goal: int = Field(default=1, ge=1)
    reminder_times: list[str] = Field(default_factory=lambda: ["09:00", "18:00"])


class Preferences(BaseModel):
    """Learner preferences held by the session manager."""

    model_config = ConfigDict(extra="forbid")

    default_session_length: int = Field(default=20, ge=1)  # minutes
    preferred_session_types: list[ContentType] = Field(default_factory=lambda: list(ContentType))
    auto_save_interval: int = Field(default=5, ge=1)  # minutes
    reminder_settings: ReminderSettings = Field(default_factory=ReminderSettings)
