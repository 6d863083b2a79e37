"""
Manager Module - Cross-session coordination.

Components:
- session_manager: SessionManager (active session, history, goals, preferences)
- analytics: Streaks, weekly progress, learning patterns
- recommendations: Recommender protocol and HeuristicRecommender
- types: History entries, analytics and recommendation records
"""

from src.manager.recommendations import HeuristicRecommender, Recommender
from src.manager.session_manager import SessionManager
from src.manager.types import (
    ActiveSessionInfo,
    CrossSessionAnalytics,
    GoalProgress,
    HistoryFilter,
    Preferences,
    Priority,
    Recommendation,
    SessionHistoryEntry,
)

__all__ = [
    "SessionManager",
    "Recommender",
    "HeuristicRecommender",
    "ActiveSessionInfo",
    "CrossSessionAnalytics",
    "GoalProgress",
    "HistoryFilter",
    "Preferences",
    "Priority",
    "Recommendation",
    "SessionHistoryEntry",
]
