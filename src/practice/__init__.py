"""
Practice Module - Per-session engine.

Components:
- session_store: PracticeSessionStore state machine
- evaluation: Evaluator protocol, KeywordEvaluator, timeout wrapper
- http_evaluator: Remote evaluation over httpx
- question_pool: Item sources (in-memory, JSON question bank)
- performance: Performance computation from recorded answers
- events: EventBus for front-end refresh
"""

from src.practice.evaluation import EvaluationResult, Evaluator, KeywordEvaluator
from src.practice.events import EventBus, SessionEvent, SessionEventKind
from src.practice.question_pool import (
    InMemoryQuestionPool,
    ItemFilter,
    JsonQuestionPool,
    QuestionPoolProvider,
)
from src.practice.session_store import PracticeSessionStore

__all__ = [
    "PracticeSessionStore",
    "EvaluationResult",
    "Evaluator",
    "KeywordEvaluator",
    "EventBus",
    "SessionEvent",
    "SessionEventKind",
    "ItemFilter",
    "QuestionPoolProvider",
    "InMemoryQuestionPool",
    "JsonQuestionPool",
]
