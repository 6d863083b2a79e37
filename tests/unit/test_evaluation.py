"""
Unit tests for the local evaluator and the bounded evaluation helper.
"""

import asyncio

import pytest

from src.core.errors import EvaluationError
from src.practice.evaluation import (
    EvaluationResult,
    KeywordEvaluator,
    evaluate_with_timeout,
    feedback_for_score,
)


class SlowEvaluator:
    async def evaluate(self, item, answer_text):
        await asyncio.sleep(5)
        return EvaluationResult(score=1.0)


class BrokenEvaluator:
    async def evaluate(self, item, answer_text):
        raise RuntimeError("model crashed")


class GenerousEvaluator:
    async def evaluate(self, item, answer_text):
        return EvaluationResult(score=1.7)


class TestFeedbackBands:
    @pytest.mark.parametrize(
        "score,fragment",
        [
            (0.95, "Excellent"),
            (0.7, "Good answer"),
            (0.5, "some points"),
            (0.1, "significant improvement"),
        ],
    )
    def test_bands(self, score, fragment):
        assert fragment in feedback_for_score(score)


class TestKeywordEvaluator:
    """Keyword coverage plus length heuristic."""

    @pytest.mark.asyncio
    async def test_partial_keyword_coverage(self, item_factory):
        item = item_factory("q1")
        result = await KeywordEvaluator(ideal_words=50).evaluate(item, "routing protocol")

        assert result.keyword_matches == ["routing", "protocol"]
        assert result.score == pytest.approx(2 / 3 * 0.7 + 2 / 50 * 0.3)
        assert any("more detailed" in s for s in result.suggestions)

    @pytest.mark.asyncio
    async def test_full_answer_scores_one(self, item_factory):
        item = item_factory("q1")
        text = "routing protocol network " + "word " * 60
        result = await KeywordEvaluator(ideal_words=50).evaluate(item, text)

        assert result.score == pytest.approx(1.0)
        assert result.suggestions == []
        assert "Excellent" in result.feedback

    @pytest.mark.asyncio
    async def test_missing_keywords_suggests_topics(self, item_factory):
        item = item_factory("q1")
        result = await KeywordEvaluator().evaluate(item, "something unrelated entirely")

        assert result.keyword_matches == []
        assert "Consider discussing: routing, protocol, network" in result.suggestions

    @pytest.mark.asyncio
    async def test_choice_items_use_exact_match(self, item_factory):
        item = item_factory("c1", options=["TCP", "UDP"], correct_answer="TCP", topic="Transport")
        evaluator = KeywordEvaluator()

        correct = await evaluator.evaluate(item, " tcp ")
        wrong = await evaluator.evaluate(item, "UDP")

        assert correct.score == 1.0
        assert wrong.score == 0.0
        assert "TCP" in wrong.feedback
        assert wrong.suggestions == ["Review Transport"]


class TestEvaluateWithTimeout:
    @pytest.mark.asyncio
    async def test_timeout_raises_evaluation_error(self, item_factory):
        with pytest.raises(EvaluationError, match="timed out"):
            await evaluate_with_timeout(SlowEvaluator(), item_factory("q1"), "text", 0.01)

    @pytest.mark.asyncio
    async def test_evaluator_exception_is_wrapped(self, item_factory):
        with pytest.raises(EvaluationError, match="model crashed"):
            await evaluate_with_timeout(BrokenEvaluator(), item_factory("q1"), "text", 1.0)

    @pytest.mark.asyncio
    async def test_score_is_clamped(self, item_factory):
        result = await evaluate_with_timeout(GenerousEvaluator(), item_factory("q1"), "text", None)
        assert result.score == 1.0
