"""
Per-session performance computation.

Performance is always derived from the recorded answers and never patched
incrementally. Only answers with non-blank text take part; with none, the
prior performance is returned unchanged.
"""

from __future__ import annotations

from src.core.selection import split_sentences, tokenize
from src.core.stats import consistency, least_squares_slope, mean
from src.core.types import (
    Answer,
    DifficultyStats,
    Item,
    Performance,
    TopicStats,
    WritingMetrics,
    empty_difficulty_breakdown,
)

STRENGTH_THRESHOLD = 0.7
WEAKNESS_THRESHOLD = 0.5


def _difficulty_breakdown(
    answers: list[Answer], items: dict[str, Item]
) -> dict[str, DifficultyStats]:
    breakdown = empty_difficulty_breakdown()
    for answer in answers:
        item = items.get(answer.question_id)
        if item is None:
            continue
        stats = breakdown[item.difficulty.value]
        stats.attempted += 1
        stats.average_score += answer.score or 0.0
        stats.average_word_count += answer.word_count

    for stats in breakdown.values():
        if stats.attempted:
            stats.average_score /= stats.attempted
            stats.average_word_count /= stats.attempted
    return breakdown


def _topic_breakdown(answers: list[Answer], items: dict[str, Item]) -> dict[str, TopicStats]:
    breakdown: dict[str, TopicStats] = {}
    expected: dict[str, list[str]] = {}

    for answer in answers:
        item = items.get(answer.question_id)
        if item is None or not item.topic:
            continue
        stats = breakdown.setdefault(item.topic, TopicStats())
        stats.attempted += 1
        stats.average_score += answer.score or 0.0
        for keyword in answer.keyword_matches:
            if keyword not in stats.key_strengths:
                stats.key_strengths.append(keyword)
        for keyword in item.keywords:
            if keyword not in expected.setdefault(item.topic, []):
                expected[item.topic].append(keyword)

    for topic, stats in breakdown.items():
        stats.average_score /= stats.attempted
        stats.improvement_areas = [
            k for k in expected.get(topic, []) if k not in stats.key_strengths
        ]
    return breakdown


def _writing_metrics(
    answers: list[Answer], items: list[Item], overall_score: float
) -> WritingMetrics:
    all_text = " ".join(a.user_answer for a in answers)
    words = tokenize(all_text)
    sentences = split_sentences(all_text)

    keywords = [k.lower() for item in items for k in item.keywords]
    keyword_set = set(keywords)
    used = [w for w in words if w in keyword_set]

    return WritingMetrics(
        vocabulary_diversity=len(set(words)) / len(words) if words else 0.0,
        average_sentence_length=len(words) / len(sentences) if sentences else 0.0,
        keyword_usage=len(used) / len(keywords) if keywords else 0.0,
        clarity=overall_score,  # proxy until a dedicated clarity signal exists
    )


def calculate_performance(
    answers: list[Answer],
    questions: list[Item],
    time_spent_ms: int,
    prior: Performance,
) -> Performance:
    """
    Compute session performance from the answer list.

    Args:
        answers: All recorded answers, in submission order
        questions: Items of the session
        time_spent_ms: Cumulative time spent answering
        prior: Performance to return when nothing qualifies

    Returns:
        Fresh Performance, or prior when no answer has text
    """
    answered = [a for a in answers if not a.is_blank]
    if not answered:
        return prior

    items = {item.id: item for item in questions}
    scores = [a.score or 0.0 for a in answered]
    word_counts = [float(a.word_count) for a in answered]
    overall_score = mean(scores)

    minutes = time_spent_ms / 60000
    return Performance(
        overall_score=overall_score,
        average_response_time=mean([float(a.time_spent_ms) for a in answered]),
        average_word_count=mean(word_counts),
        word_count_trend=least_squares_slope(word_counts),
        score_trend=least_squares_slope(scores),
        difficulty_breakdown=_difficulty_breakdown(answered, items),
        topic_breakdown=_topic_breakdown(answered, items),
        writing_metrics=_writing_metrics(answered, questions, overall_score),
        time_efficiency=len(answered) / minutes if minutes > 0 else 0.0,
        consistency_score=consistency(scores),
    )


def summarize_topics(performance: Performance) -> tuple[list[str], list[str]]:
    """Split topics into strengths and weaknesses by average score."""
    strengths = [
        topic for topic, stats in performance.topic_breakdown.items()
        if stats.average_score >= STRENGTH_THRESHOLD
    ]
    weaknesses = [
        topic for topic, stats in performance.topic_breakdown.items()
        if stats.average_score < WEAKNESS_THRESHOLD
    ]
    return strengths, weaknesses
