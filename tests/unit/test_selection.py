"""
Unit tests for item filtering, ranking and text helpers.
"""

import random

from src.core.selection import (
    count_words,
    extract_keywords,
    filter_items,
    rank_items,
    select_items,
    tailored_priority,
    topic_from_source,
)
from src.core.types import DifficultyFilter, FocusStrategy, SessionConfig


class TestTextHelpers:
    def test_count_words_ignores_extra_whitespace(self):
        assert count_words("  OSPF   uses\tlink state\n") == 4
        assert count_words("") == 0
        assert count_words("   ") == 0

    def test_extract_keywords_skips_short_and_stop_words(self):
        text = "The router forwards packets because routing tables describe every network."
        keywords = extract_keywords(text)

        assert keywords[:3] == ["router", "forwards", "packets"]
        assert "because" not in keywords
        assert "the" not in keywords

    def test_extract_keywords_respects_limit(self):
        text = " ".join(f"keyword{i}" for i in range(20))
        assert len(extract_keywords(text, limit=4)) == 4

    def test_topic_from_source(self):
        assert topic_from_source("materials/week-1/OSPF_routing-basics.pdf") == "OSPF routing basics"
        assert topic_from_source("C:\\notes\\vlan_design.pdf") == "vlan design"


class TestFiltering:
    """Week, material and difficulty filters."""

    def test_week_filter_matches_label_substring(self, sample_items):
        config = SessionConfig(weeks=["week-2"])
        ids = [i.id for i in filter_items(sample_items, config)]
        assert ids == ["m1", "h1"]

    def test_all_weeks_disables_week_filter(self, sample_items):
        config = SessionConfig(weeks=["all-weeks"])
        assert len(filter_items(sample_items, config)) == len(sample_items)

    def test_material_filter_is_case_insensitive(self, sample_items):
        config = SessionConfig(materials=["SUBNETTING"])
        assert all(i.difficulty.value == "hard" for i in filter_items(sample_items, config))
        assert len(filter_items(sample_items, config)) == 5

    def test_difficulty_filter(self, sample_items):
        config = SessionConfig(difficulty=DifficultyFilter.MEDIUM)
        assert {i.id for i in filter_items(sample_items, config)} == {"m0", "m1", "m2", "m3", "m4"}

    def test_blank_weeks_are_dropped_from_config(self):
        config = SessionConfig(weeks=["", "  ", "week-3 "])
        assert config.weeks == ["week-3"]


class TestRanking:
    """Focus strategies."""

    def test_weak_areas_orders_by_ascending_score(self, sample_items):
        medium = [i for i in sample_items if i.difficulty.value == "medium"]
        ranked = rank_items(medium, FocusStrategy.WEAK_AREAS)
        assert [i.id for i in ranked] == ["m1", "m3", "m2", "m4", "m0"]

    def test_recent_content_puts_latest_week_first(self, sample_items):
        ranked = rank_items(sample_items, FocusStrategy.RECENT_CONTENT)
        assert [i.id for i in ranked[:2]] == ["m4", "h4"]

    def test_tailored_prefers_hard_poorly_answered_items(self, sample_items):
        ranked = rank_items(sample_items, FocusStrategy.TAILORED)
        assert [i.id for i in ranked[:3]] == ["h0", "h1", "h2"]
        assert tailored_priority(ranked[0]) >= tailored_priority(ranked[-1])

    def test_comprehensive_is_a_permutation(self, sample_items):
        ranked = rank_items(sample_items, FocusStrategy.COMPREHENSIVE, random.Random(3))
        assert sorted(i.id for i in ranked) == sorted(i.id for i in sample_items)

    def test_comprehensive_is_reproducible_with_seed(self, sample_items):
        first = rank_items(sample_items, FocusStrategy.COMPREHENSIVE, random.Random(11))
        second = rank_items(sample_items, FocusStrategy.COMPREHENSIVE, random.Random(11))
        assert [i.id for i in first] == [i.id for i in second]


class TestSelectItems:
    def test_truncates_to_requested_size(self, sample_items):
        config = SessionConfig(num_questions=3, focus=FocusStrategy.WEAK_AREAS)
        assert len(select_items(sample_items, config)) == 3

    def test_returns_everything_when_pool_is_smaller(self, sample_items):
        config = SessionConfig(num_questions=50, difficulty=DifficultyFilter.HARD)
        assert len(select_items(sample_items, config)) == 5

    def test_no_matches_returns_empty(self, sample_items):
        config = SessionConfig(weeks=["week-99"])
        assert select_items(sample_items, config) == []
