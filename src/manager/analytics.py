"""
Cross-session analytics.

Everything here is a pure function of the history list (most recent
first, as the manager stores it) plus "now" and the daily goal. Analytics
are recomputed wholesale on every change and never patched.

Streaks count local calendar days with at least one completed session:
- current streak walks back from today; when today has no session yet the
  walk starts at yesterday, since the streak is alive until the day ends
- longest streak scans chronologically; a one-day gap extends the run and
  any other gap (including a second session on the same day) restarts it
"""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta

from src.core.stats import least_squares_slope, mean
from src.core.types import ContentType, SessionStatus
from src.manager.types import (
    CrossSessionAnalytics,
    Goals,
    LearningPatterns,
    SessionHistoryEntry,
    TypeBreakdown,
)

DEFAULT_PRODUCTIVE_HOUR = 14
DEFAULT_SESSION_LENGTH_MINUTES = 20
MAX_TOPICS = 5


def _completed(history: list[SessionHistoryEntry]) -> list[SessionHistoryEntry]:
    return [entry for entry in history if entry.status == SessionStatus.COMPLETED]


def _chronological(history: list[SessionHistoryEntry]) -> list[SessionHistoryEntry]:
    return sorted(history, key=lambda entry: entry.started_at)


# =============================================================================
# Streaks and goals
# =============================================================================


def current_streak(history: list[SessionHistoryEntry], today: date) -> int:
    """Consecutive days up to today (or yesterday) with a completed session."""
    days = {entry.started_at.date() for entry in _completed(history)}
    day = today if today in days else today - timedelta(days=1)

    streak = 0
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def longest_streak(history: list[SessionHistoryEntry]) -> int:
    sessions = _chronological(_completed(history))
    if not sessions:
        return 0

    longest = 0
    run = 1
    last_day = sessions[0].started_at.date()
    for entry in sessions[1:]:
        day = entry.started_at.date()
        if (day - last_day).days == 1:
            run += 1
        else:
            longest = max(longest, run)
            run = 1
        last_day = day
    return max(longest, run)


def week_bounds(today: date) -> tuple[date, date]:
    """Sunday and Saturday of the week containing today."""
    start = today - timedelta(days=(today.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


def weekly_progress(history: list[SessionHistoryEntry], today: date, daily_goal: int) -> float:
    """Completed sessions this week as a percentage of daily_goal * 7, capped at 100."""
    target = daily_goal * 7
    if target <= 0:
        return 0.0
    start, end = week_bounds(today)
    count = sum(1 for entry in _completed(history) if start <= entry.started_at.date() <= end)
    return min(count / target * 100, 100.0)


def sessions_completed_on(history: list[SessionHistoryEntry], day: date) -> int:
    return sum(1 for entry in _completed(history) if entry.started_at.date() == day)


# =============================================================================
# Learning patterns
# =============================================================================


def most_productive_hour(history: list[SessionHistoryEntry]) -> int:
    """Mode of session start hours; ties go to the earliest hour."""
    if not history:
        return DEFAULT_PRODUCTIVE_HOUR
    counts = Counter(entry.started_at.hour for entry in history)
    return min(counts, key=lambda hour: (-counts[hour], hour))


def preferred_session_length(history: list[SessionHistoryEntry]) -> int:
    """Mean duration in whole minutes of completed sessions."""
    lengths = [
        entry.duration_minutes for entry in _completed(history)
        if entry.duration_minutes is not None
    ]
    return round(mean(lengths)) or DEFAULT_SESSION_LENGTH_MINUTES


def improvement_trend(history: list[SessionHistoryEntry]) -> float:
    """OLS slope of accuracy against chronological session index."""
    return least_squares_slope([entry.final_stats.accuracy for entry in _chronological(history)])


def topic_signals(history: list[SessionHistoryEntry]) -> tuple[list[str], list[str]]:
    """
    Strongest and weakest topics by net mentions across sessions.

    A topic listed as a strength counts +1, as a weakness -1. Strongest
    topics have a positive balance, weakest a negative one, each ordered
    by magnitude.
    """
    balance: Counter[str] = Counter()
    for entry in history:
        for topic in entry.performance.strengths:
            balance[topic] += 1
        for topic in entry.performance.weaknesses:
            balance[topic] -= 1

    strongest = sorted((t for t, n in balance.items() if n > 0), key=lambda t: (-balance[t], t))
    weakest = sorted((t for t, n in balance.items() if n < 0), key=lambda t: (balance[t], t))
    return strongest[:MAX_TOPICS], weakest[:MAX_TOPICS]


def _preferred_difficulty(entries: list[SessionHistoryEntry]) -> str:
    if not entries:
        return "mixed"
    counts = Counter(entry.config.difficulty.value for entry in entries)
    return counts.most_common(1)[0][0]


def type_breakdown(history: list[SessionHistoryEntry]) -> dict[str, TypeBreakdown]:
    breakdown = {}
    for content_type in ContentType:
        entries = [entry for entry in history if entry.type == content_type]
        breakdown[content_type.value] = TypeBreakdown(
            count=len(entries),
            average_accuracy=mean([e.final_stats.accuracy for e in entries]),
            average_score=mean([e.final_stats.score or 0.0 for e in entries]),
            total_time_ms=sum(e.final_stats.total_time_ms for e in entries),
            preferred_difficulty=_preferred_difficulty(entries),
        )
    return breakdown


# =============================================================================
# Aggregate
# =============================================================================


def compute_analytics(
    history: list[SessionHistoryEntry],
    daily_goal: int,
    now: datetime,
) -> CrossSessionAnalytics:
    """Recompute all cross-session analytics from history."""
    today = now.date()
    goals = Goals(
        daily_session_target=daily_goal,
        current_streak=current_streak(history, today),
        longest_streak=longest_streak(history),
        weekly_progress=weekly_progress(history, today, daily_goal),
    )
    if not history:
        return CrossSessionAnalytics(goals=goals)

    total_time_ms = sum(entry.final_stats.total_time_ms for entry in history)
    strongest, weakest = topic_signals(history)

    return CrossSessionAnalytics(
        total_sessions=len(history),
        total_time_ms=total_time_ms,
        average_session_length=total_time_ms / len(history) / 60_000,
        session_type_breakdown=type_breakdown(history),
        learning_patterns=LearningPatterns(
            most_productive_hour=most_productive_hour(history),
            preferred_session_length=preferred_session_length(history),
            strongest_topics=strongest,
            weakest_topics=weakest,
            improvement_trend=improvement_trend(history),
        ),
        goals=goals,
    )
