"""
Unit tests for the heuristic recommender.
"""

from datetime import datetime, timedelta

import pytest

from src.core.types import ContentType, DifficultyFilter, FocusStrategy, PracticeMode
from src.manager.recommendations import HeuristicRecommender, hour_distance
from src.manager.types import CrossSessionAnalytics, LearningPatterns, Priority, TypeBreakdown

NOW = datetime(2024, 3, 13, 10, 0, 0)


def analytics_with(counts=None, weakest=None, productive_hour=3):
    counts = counts or {"cuecards": 4, "multiple-choice": 4, "open-questions": 2}
    return CrossSessionAnalytics(
        total_sessions=sum(counts.values()),
        session_type_breakdown={k: TypeBreakdown(count=v) for k, v in counts.items()},
        learning_patterns=LearningPatterns(
            most_productive_hour=productive_hour,
            weakest_topics=list(weakest or []),
        ),
    )


@pytest.fixture
def recommender():
    return HeuristicRecommender()


class TestHourDistance:
    @pytest.mark.parametrize("a,b,expected", [(10, 14, 4), (23, 1, 2), (0, 12, 12), (5, 5, 0)])
    def test_wraps_around_midnight(self, a, b, expected):
        assert hour_distance(a, b) == expected


class TestHeuristicRecommender:
    def test_balanced_history_outside_productive_hour(self, recommender):
        assert recommender.recommend(analytics_with(), [], NOW) == []

    def test_weak_topic_uses_most_recent_session_type(self, recommender, entry_factory):
        history = [
            entry_factory("new", NOW - timedelta(days=1), "open-questions", weaknesses=["VLANs"], course_id="net-201"),
            entry_factory("old", NOW - timedelta(days=2), "cuecards", weaknesses=["VLANs"]),
        ]
        recs = recommender.recommend(analytics_with(weakest=["VLANs", "Subnetting"]), history, NOW)

        first = recs[0]
        assert first.type == ContentType.OPEN_QUESTIONS
        assert first.reason == "Focus on VLANs where you need improvement"
        assert first.priority == Priority.HIGH
        assert first.estimated_duration == 15
        assert first.config.focus == FocusStrategy.WEAK_AREAS
        assert first.config.difficulty == DifficultyFilter.MEDIUM
        assert first.config.course_id == "net-201"

    def test_weak_topic_defaults_to_multiple_choice(self, recommender):
        recs = recommender.recommend(analytics_with(weakest=["OSPF"]), [], NOW)
        assert recs[0].type == ContentType.MULTIPLE_CHOICE

    def test_underused_types(self, recommender):
        analytics = analytics_with(counts={"cuecards": 0, "multiple-choice": 5, "open-questions": 5})
        recs = recommender.recommend(analytics, [], NOW)

        assert [r.type for r in recs] == [ContentType.CUECARDS]
        assert recs[0].config.focus == FocusStrategy.TAILORED
        assert recs[0].estimated_duration == 10
        assert recs[0].priority == Priority.MEDIUM

    def test_underused_multiple_choice_is_exam_mode(self, recommender):
        analytics = analytics_with(counts={"cuecards": 5, "multiple-choice": 1, "open-questions": 4})
        recs = recommender.recommend(analytics, [], NOW)

        assert recs[0].type == ContentType.MULTIPLE_CHOICE
        assert recs[0].config.practice_mode == PracticeMode.EXAM

    def test_no_history_has_no_type_rule(self, recommender):
        analytics = CrossSessionAnalytics()
        analytics.learning_patterns.most_productive_hour = 3
        assert recommender.recommend(analytics, [], NOW) == []

    def test_productive_hour_window(self, recommender):
        recs = recommender.recommend(analytics_with(productive_hour=12), [], NOW)

        assert len(recs) == 1
        assert recs[0].config.difficulty == DifficultyFilter.HARD
        assert recs[0].estimated_duration == 20
        assert recs[0].priority == Priority.HIGH

        assert recommender.recommend(analytics_with(productive_hour=13), [], NOW) == []

    def test_at_most_three(self, recommender):
        analytics = analytics_with(
            counts={"cuecards": 0, "multiple-choice": 0, "open-questions": 0},
            weakest=["VLANs"],
            productive_hour=10,
        )
        analytics.session_type_breakdown["open-questions"].count = 1

        recs = recommender.recommend(analytics, [], NOW)

        assert len(recs) == 3
        assert [r.type for r in recs] == [
            ContentType.MULTIPLE_CHOICE,
            ContentType.CUECARDS,
            ContentType.MULTIPLE_CHOICE,
        ]
