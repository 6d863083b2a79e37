"""
Shared domain types for practice sessions.

Enums and dataclasses used by the session store, the session manager and
the persistence layer. Session configuration is a pydantic model so that
malformed input is rejected at the boundary.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Difficulty(str, Enum):
    """Difficulty of a single item."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class DifficultyFilter(str, Enum):
    """Difficulty requested for a session. MIXED means no filtering."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    MIXED = "mixed"


class FocusStrategy(str, Enum):
    """Ranking policy used to populate a session."""

    TAILORED = "tailored-for-me"
    WEAK_AREAS = "weak-areas"
    RECENT_CONTENT = "recent-content"
    COMPREHENSIVE = "comprehensive"


class SessionStatus(str, Enum):
    """Lifecycle state of a session."""

    IDLE = "idle"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


class EvaluationStatus(str, Enum):
    """Lifecycle state of a single answer's evaluation."""

    PENDING = "pending"
    EVALUATING = "evaluating"
    COMPLETED = "completed"
    FAILED = "failed"


class PracticeMode(str, Enum):
    PRACTICE = "practice"
    EXAM = "exam"


class ContentType(str, Enum):
    """Kinds of practice sessions the manager coordinates."""

    CUECARDS = "cuecards"
    MULTIPLE_CHOICE = "multiple-choice"
    OPEN_QUESTIONS = "open-questions"


def generate_session_id(content_type: ContentType) -> str:
    """Generate a session id prefixed with its content type."""
    return f"{content_type.value}-{uuid.uuid4().hex[:12]}"


DIFFICULTY_WEIGHTS = {
    Difficulty.EASY: 1,
    Difficulty.MEDIUM: 2,
    Difficulty.HARD: 3,
}


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO timestamp; aware values become naive local time."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        value = datetime.fromisoformat(value)
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


def known_fields(cls: type, data: dict) -> dict:
    """Keep only the keys that are fields of dataclass cls."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


# =============================================================================
# Configuration
# =============================================================================


class SessionConfig(BaseModel):
    """Options for a single practice session."""

    model_config = ConfigDict(extra="ignore")

    course_id: str = ""
    weeks: list[str] = Field(default_factory=list)  # empty means all weeks
    materials: list[str] = Field(default_factory=list)  # empty means all sources
    num_questions: int = Field(default=5, ge=1)
    difficulty: DifficultyFilter = DifficultyFilter.MIXED
    focus: FocusStrategy = FocusStrategy.COMPREHENSIVE
    practice_mode: PracticeMode = PracticeMode.PRACTICE
    time_limit_minutes: float | None = Field(default=None, gt=0)
    require_min_words: int | None = Field(default=50, ge=0)
    enable_ai_evaluation: bool = True
    await_pending_evaluations: bool | None = None  # None defers to settings

    @field_validator("weeks", "materials")
    @classmethod
    def _strip_blank(cls, values: list[str]) -> list[str]:
        return [v.strip() for v in values if v and v.strip()]


# =============================================================================
# Items and Answers
# =============================================================================


@dataclass
class Item:
    """A practice question with its running historical statistics."""

    id: str
    content: str
    difficulty: Difficulty = Difficulty.MEDIUM
    topic: str = ""
    keywords: list[str] = field(default_factory=list)
    week: str = ""
    source: str = ""
    sample_answer: str = ""
    options: list[str] = field(default_factory=list)  # non-empty for choice items
    correct_answer: str | None = None

    # Running stats
    times_seen: int = 0
    times_answered: int = 0
    average_score: float = 0.0  # 0-1 scale
    average_word_count: float = 0.0
    average_response_time: float = 0.0  # milliseconds

    @property
    def is_choice(self) -> bool:
        return bool(self.options) and self.correct_answer is not None

    def record_attempt(
        self,
        score: float,
        word_count: int,
        response_time: float,
        answered: bool,
        count_seen: bool = True,
    ) -> None:
        """
        Fold one attempt into the running averages.

        Uses the incremental mean new = (old * n + value) / (n + 1) with
        n = times_answered. A blank attempt folds a 0 into average_score
        without counting as answered, so skipped items rank as weaker.
        count_seen=False folds an answer for an item already counted as seen.
        """
        if count_seen:
            self.times_seen += 1

        n = self.times_answered
        if not answered:
            self.average_score = (self.average_score * n) / (n + 1)
            return

        self.average_score = (self.average_score * n + score) / (n + 1)
        self.average_word_count = (self.average_word_count * n + word_count) / (n + 1)
        self.average_response_time = (self.average_response_time * n + response_time) / (n + 1)
        self.times_answered = n + 1

    def to_dict(self) -> dict:
        data = asdict(self)
        data["difficulty"] = self.difficulty.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Item:
        data = dict(data)
        data["difficulty"] = Difficulty(data.get("difficulty", Difficulty.MEDIUM))
        return cls(**known_fields(cls, data))


@dataclass
class Answer:
    """A learner's answer to one item. At most one per item per session."""

    question_id: str
    user_answer: str
    word_count: int
    time_spent_ms: int
    timestamp: datetime
    evaluation_status: EvaluationStatus = EvaluationStatus.PENDING
    score: float | None = None
    keyword_matches: list[str] = field(default_factory=list)
    feedback: str | None = None
    suggestions: list[str] = field(default_factory=list)
    revision: int = 0

    @property
    def is_blank(self) -> bool:
        return not self.user_answer.strip()

    def to_dict(self) -> dict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        data["evaluation_status"] = self.evaluation_status.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Answer:
        data = dict(data)
        data["timestamp"] = parse_datetime(data["timestamp"])
        data["evaluation_status"] = EvaluationStatus(data.get("evaluation_status", "pending"))
        return cls(**known_fields(cls, data))


# =============================================================================
# Progress and Performance
# =============================================================================


@dataclass
class Progress:
    """Navigation position and running aggregates of one session."""

    current_index: int = 0
    total_questions: int = 0
    answered_count: int = 0
    skipped_count: int = 0
    time_spent_ms: int = 0
    started_at: datetime | None = None
    last_updated: datetime | None = None
    average_time_per_question: float = 0.0
    average_word_count: float = 0.0
    average_score: float = 0.0
    answers: list[Answer] = field(default_factory=list)
    flagged_questions: list[str] = field(default_factory=list)  # ordered set
    remaining_time_ms: int | None = None

    def find_answer(self, question_id: str) -> Answer | None:
        return next((a for a in self.answers if a.question_id == question_id), None)

    def to_dict(self) -> dict:
        return {
            "current_index": self.current_index,
            "total_questions": self.total_questions,
            "answered_count": self.answered_count,
            "skipped_count": self.skipped_count,
            "time_spent_ms": self.time_spent_ms,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "average_time_per_question": self.average_time_per_question,
            "average_word_count": self.average_word_count,
            "average_score": self.average_score,
            "answers": [a.to_dict() for a in self.answers],
            "flagged_questions": list(self.flagged_questions),
            "remaining_time_ms": self.remaining_time_ms,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Progress:
        data = dict(data)
        data["started_at"] = parse_datetime(data.get("started_at"))
        data["last_updated"] = parse_datetime(data.get("last_updated"))
        data["answers"] = [Answer.from_dict(a) for a in data.get("answers", [])]
        return cls(**known_fields(cls, data))


@dataclass
class DifficultyStats:
    attempted: int = 0
    average_score: float = 0.0
    average_word_count: float = 0.0


@dataclass
class TopicStats:
    attempted: int = 0
    average_score: float = 0.0
    key_strengths: list[str] = field(default_factory=list)
    improvement_areas: list[str] = field(default_factory=list)


@dataclass
class WritingMetrics:
    vocabulary_diversity: float = 0.0  # unique tokens / total tokens
    average_sentence_length: float = 0.0
    keyword_usage: float = 0.0
    clarity: float = 0.0


def empty_difficulty_breakdown() -> dict[str, DifficultyStats]:
    return {d.value: DifficultyStats() for d in Difficulty}


@dataclass
class Performance:
    """Per-session performance, always derived from the answers."""

    overall_score: float = 0.0
    average_response_time: float = 0.0
    average_word_count: float = 0.0
    word_count_trend: float = 0.0
    score_trend: float = 0.0
    difficulty_breakdown: dict[str, DifficultyStats] = field(
        default_factory=empty_difficulty_breakdown
    )
    topic_breakdown: dict[str, TopicStats] = field(default_factory=dict)
    writing_metrics: WritingMetrics = field(default_factory=WritingMetrics)
    time_efficiency: float = 0.0  # answers per minute
    consistency_score: float = 0.0  # 0-1

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Performance:
        data = dict(data)
        data["difficulty_breakdown"] = {
            k: DifficultyStats(**known_fields(DifficultyStats, v))
            for k, v in data.get("difficulty_breakdown", {}).items()
        }
        data["topic_breakdown"] = {
            k: TopicStats(**known_fields(TopicStats, v))
            for k, v in data.get("topic_breakdown", {}).items()
        }
        metrics = data.get("writing_metrics", {})
        data["writing_metrics"] = WritingMetrics(**known_fields(WritingMetrics, metrics))
        return cls(**known_fields(cls, data))


@dataclass
class SessionStats:
    """Quick summary for progress displays."""

    total_time_ms: int
    questions_answered: int
    average_score: float
    questions_remaining: int
    average_word_count: float


@dataclass
class FinalStats:
    """Summary handed to the session manager when a session ends."""

    total_time_ms: int = 0
    items_completed: int = 0
    accuracy: float = 0.0  # percentage of answered items that passed
    score: float | None = None  # percentage
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> FinalStats:
        return cls(**known_fields(cls, data))
