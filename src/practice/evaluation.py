"""
Answer evaluation capability.

The session store scores answers through an Evaluator. The default
KeywordEvaluator is a local heuristic (keyword coverage plus answer
length, exact match for choice items); HttpEvaluator in
src.practice.http_evaluator delegates to a remote scoring service.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Protocol

from loguru import logger

from src.core.errors import EvaluationError
from src.core.selection import count_words, tokenize
from src.core.types import Item

FALLBACK_FEEDBACK = "Evaluation failed - please try again"


@dataclass
class EvaluationResult:
    """Outcome of scoring one answer."""

    score: float  # 0-1
    keyword_matches: list[str] = field(default_factory=list)
    feedback: str = ""
    suggestions: list[str] = field(default_factory=list)


class Evaluator(Protocol):
    """Protocol for answer scoring backends."""

    async def evaluate(self, item: Item, answer_text: str) -> EvaluationResult:
        """Score an answer. May raise on failure or hang; callers bound it."""
        ...


def feedback_for_score(score: float) -> str:
    """Banded qualitative feedback for a 0-1 score."""
    if score > 0.8:
        return "Excellent answer! You covered the key concepts well."
    if score > 0.6:
        return "Good answer, but could be more comprehensive."
    if score > 0.4:
        return "Your answer addresses some points but misses key concepts."
    return "This answer needs significant improvement to address the question properly."


class KeywordEvaluator:
    """
    Heuristic scorer based on keyword coverage and answer length.

    score = min(keyword_ratio * 0.7 + length_ratio * 0.3, 1)

    where keyword_ratio is the share of the item's keywords found in the
    answer and length_ratio saturates at ideal_words.
    """

    KEYWORD_WEIGHT = 0.7
    LENGTH_WEIGHT = 0.3

    def __init__(self, ideal_words: int = 50, latency_seconds: float = 0.0):
        self.ideal_words = max(1, ideal_words)
        self.latency_seconds = latency_seconds

    async def evaluate(self, item: Item, answer_text: str) -> EvaluationResult:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        if item.is_choice:
            return self._evaluate_choice(item, answer_text)

        words = tokenize(answer_text)
        matches = [
            keyword for keyword in item.keywords
            if any(keyword.lower() in word for word in words)
        ]
        keyword_ratio = len(matches) / (len(item.keywords) or 1)
        length_ratio = min(count_words(answer_text) / self.ideal_words, 1.0)
        score = min(keyword_ratio * self.KEYWORD_WEIGHT + length_ratio * self.LENGTH_WEIGHT, 1.0)

        suggestions = []
        if keyword_ratio < 0.5 and item.keywords:
            suggestions.append(f"Consider discussing: {', '.join(item.keywords[:3])}")
        if length_ratio < 0.5:
            suggestions.append("Try to provide a more detailed explanation with examples.")

        return EvaluationResult(
            score=score,
            keyword_matches=matches,
            feedback=feedback_for_score(score),
            suggestions=suggestions,
        )

    def _evaluate_choice(self, item: Item, answer_text: str) -> EvaluationResult:
        correct = answer_text.strip().lower() == (item.correct_answer or "").strip().lower()
        if correct:
            return EvaluationResult(score=1.0, feedback="Correct.")
        return EvaluationResult(
            score=0.0,
            feedback=f"Incorrect. The correct answer is: {item.correct_answer}",
            suggestions=[f"Review {item.topic}"] if item.topic else [],
        )


async def evaluate_with_timeout(
    evaluator: Evaluator,
    item: Item,
    answer_text: str,
    timeout: float | None,
) -> EvaluationResult:
    """
    Run an evaluator with an upper time bound.

    Timeouts and evaluator exceptions are raised as EvaluationError; the
    returned score is clamped to [0, 1].

    Raises:
        EvaluationError: If the evaluator fails or exceeds the timeout
    """
    try:
        result = await asyncio.wait_for(evaluator.evaluate(item, answer_text), timeout)
    except asyncio.TimeoutError as e:
        logger.warning(f"Evaluation of {item.id} timed out after {timeout}s")
        raise EvaluationError(f"Evaluation timed out after {timeout}s") from e
    except EvaluationError:
        raise
    except Exception as e:  # Intentionally broad - any evaluator fault degrades one answer
        logger.warning(f"Evaluation of {item.id} failed: {e}")
        raise EvaluationError(str(e)) from e

    result.score = max(0.0, min(1.0, float(result.score)))
    return result
