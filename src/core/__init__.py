"""
Core Module - Shared domain types, errors and selection algorithms.

Components:
- types: Items, answers, progress, performance and session configuration
- errors: Typed engine errors (validation, state, evaluation, persistence)
- selection: Pool filtering, focus ranking and text helpers

Design Principle:
The session store (src/practice/) and session manager (src/manager/)
import shared concepts from here rather than redefining them.
"""

from src.core.errors import (
    EvaluationError,
    PersistenceError,
    PracticeError,
    StateError,
    ValidationError,
)
from src.core.types import (
    Answer,
    ContentType,
    Difficulty,
    DifficultyFilter,
    EvaluationStatus,
    FinalStats,
    FocusStrategy,
    Item,
    Performance,
    PracticeMode,
    Progress,
    SessionConfig,
    SessionStats,
    SessionStatus,
)

__all__ = [
    # Errors
    "PracticeError",
    "ValidationError",
    "StateError",
    "EvaluationError",
    "PersistenceError",
    # Types
    "Answer",
    "ContentType",
    "Difficulty",
    "DifficultyFilter",
    "EvaluationStatus",
    "FinalStats",
    "FocusStrategy",
    "Item",
    "Performance",
    "PracticeMode",
    "Progress",
    "SessionConfig",
    "SessionStats",
    "SessionStatus",
]
