"""
Next-session recommendations.

HeuristicRecommender applies three rules in order and keeps the first
three results:

1. Weakest topic: a weak-areas session of the type where the topic last
   showed up as a weakness (high priority).
2. Underused types: any content type below its share of total sessions
   (30% cuecards and multiple-choice, 20% open questions), each with its
   natural default focus (medium priority).
3. Productive hour: within two hours of the learner's most productive
   hour, a hard session (high priority).
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from src.core.types import (
    ContentType,
    DifficultyFilter,
    FocusStrategy,
    PracticeMode,
    SessionConfig,
)
from src.manager.types import CrossSessionAnalytics, Priority, Recommendation, SessionHistoryEntry


class Recommender(Protocol):
    """Protocol for recommendation backends."""

    def recommend(
        self,
        analytics: CrossSessionAnalytics,
        history: list[SessionHistoryEntry],
        now: datetime,
    ) -> list[Recommendation]:
        ...


def hour_distance(a: int, b: int) -> int:
    """Distance between two hours of the day on a 24-hour clock face."""
    diff = abs(a - b) % 24
    return min(diff, 24 - diff)


class HeuristicRecommender:
    """Rule-based recommender over cross-session analytics."""

    MAX_RECOMMENDATIONS = 3
    PRODUCTIVE_WINDOW_HOURS = 2
    UNDERUSE_THRESHOLDS = {
        ContentType.CUECARDS: 0.3,
        ContentType.MULTIPLE_CHOICE: 0.3,
        ContentType.OPEN_QUESTIONS: 0.2,
    }

    def recommend(
        self,
        analytics: CrossSessionAnalytics,
        history: list[SessionHistoryEntry],
        now: datetime,
    ) -> list[Recommendation]:
        course_id = history[0].course_id if history else ""
        recommendations: list[Recommendation] = []

        weak = self._weak_topic(analytics, history, course_id)
        if weak is not None:
            recommendations.append(weak)
        recommendations.extend(self._underused_types(analytics, course_id))
        productive = self._productive_hour(analytics, now, course_id)
        if productive is not None:
            recommendations.append(productive)

        return recommendations[: self.MAX_RECOMMENDATIONS]

    # =========================================================================
    # Rules
    # =========================================================================

    def _weak_topic(
        self,
        analytics: CrossSessionAnalytics,
        history: list[SessionHistoryEntry],
        course_id: str,
    ) -> Recommendation | None:
        weakest = analytics.learning_patterns.weakest_topics
        if not weakest:
            return None
        topic = weakest[0]

        # history is most recent first
        content_type = next(
            (entry.type for entry in history if topic in entry.performance.weaknesses),
            ContentType.MULTIPLE_CHOICE,
        )
        return Recommendation(
            type=content_type,
            reason=f"Focus on {topic} where you need improvement",
            config=SessionConfig(
                course_id=course_id,
                difficulty=DifficultyFilter.MEDIUM,
                focus=FocusStrategy.WEAK_AREAS,
            ),
            estimated_duration=15,
            priority=Priority.HIGH,
            benefits=["Improve understanding", "Build confidence", "Fill knowledge gaps"],
        )

    def _underused_types(
        self, analytics: CrossSessionAnalytics, course_id: str
    ) -> list[Recommendation]:
        breakdown = analytics.session_type_breakdown
        total = sum(stats.count for stats in breakdown.values())
        if total == 0:
            return []

        def share(content_type: ContentType) -> float:
            stats = breakdown.get(content_type.value)
            return stats.count / total if stats else 0.0

        recommendations = []
        if share(ContentType.CUECARDS) < self.UNDERUSE_THRESHOLDS[ContentType.CUECARDS]:
            recommendations.append(
                Recommendation(
                    type=ContentType.CUECARDS,
                    reason="Practice vocabulary and key concepts with spaced repetition",
                    config=SessionConfig(course_id=course_id, focus=FocusStrategy.TAILORED),
                    estimated_duration=10,
                    priority=Priority.MEDIUM,
                    benefits=["Improve memory retention", "Quick review", "Strengthen fundamentals"],
                )
            )
        if share(ContentType.MULTIPLE_CHOICE) < self.UNDERUSE_THRESHOLDS[ContentType.MULTIPLE_CHOICE]:
            recommendations.append(
                Recommendation(
                    type=ContentType.MULTIPLE_CHOICE,
                    reason="Test your knowledge with multiple choice questions",
                    config=SessionConfig(
                        course_id=course_id,
                        difficulty=DifficultyFilter.MEDIUM,
                        focus=FocusStrategy.COMPREHENSIVE,
                        practice_mode=PracticeMode.EXAM,
                    ),
                    estimated_duration=15,
                    priority=Priority.MEDIUM,
                    benefits=["Identify knowledge gaps", "Practice for exams", "Quick feedback"],
                )
            )
        if share(ContentType.OPEN_QUESTIONS) < self.UNDERUSE_THRESHOLDS[ContentType.OPEN_QUESTIONS]:
            recommendations.append(
                Recommendation(
                    type=ContentType.OPEN_QUESTIONS,
                    reason="Develop deeper understanding through written explanations",
                    config=SessionConfig(
                        course_id=course_id,
                        difficulty=DifficultyFilter.MEDIUM,
                        focus=FocusStrategy.COMPREHENSIVE,
                    ),
                    estimated_duration=25,
                    priority=Priority.MEDIUM,
                    benefits=[
                        "Improve critical thinking",
                        "Practice explanation skills",
                        "Deepen understanding",
                    ],
                )
            )
        return recommendations

    def _productive_hour(
        self, analytics: CrossSessionAnalytics, now: datetime, course_id: str
    ) -> Recommendation | None:
        productive = analytics.learning_patterns.most_productive_hour
        if hour_distance(now.hour, productive) > self.PRODUCTIVE_WINDOW_HOURS:
            return None
        return Recommendation(
            type=ContentType.MULTIPLE_CHOICE,
            reason="This is your most productive time - tackle challenging questions!",
            config=SessionConfig(
                course_id=course_id,
                difficulty=DifficultyFilter.HARD,
                focus=FocusStrategy.COMPREHENSIVE,
            ),
            estimated_duration=20,
            priority=Priority.HIGH,
            benefits=["Maximize learning efficiency", "Challenge yourself", "Build expertise"],
        )
