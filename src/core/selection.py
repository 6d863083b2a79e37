"""
Item selection and text helpers.

Filtering narrows the pool by week, material and difficulty; ranking orders
what is left according to the session's focus strategy; selection truncates
to the requested size.

Focus strategies:
- weak-areas: worst average score first
- recent-content: latest week label first
- tailored-for-me: hard items and poorly answered items first
- comprehensive: uniform shuffle
"""

from __future__ import annotations

import random
import re
from collections.abc import Iterable
from pathlib import PurePosixPath

from src.core.types import (
    DIFFICULTY_WEIGHTS,
    DifficultyFilter,
    FocusStrategy,
    Item,
    SessionConfig,
)

ALL_WEEKS = "all-weeks"

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "is", "are", "was", "were", "be", "been", "have", "has",
    "had", "do", "does", "did", "will", "would", "could", "should", "may",
    "might", "can", "that", "this", "these", "those", "they", "them", "their",
    "it", "its", "which", "there", "where", "because", "about",
})

MAX_KEYWORDS = 10

_TOKEN_SPLIT = re.compile(r"\W+")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")


# =============================================================================
# Text helpers
# =============================================================================


def count_words(text: str) -> int:
    """Count whitespace-delimited, non-empty tokens."""
    return len(text.split())


def tokenize(text: str) -> list[str]:
    """Lower-case word tokens, punctuation dropped."""
    return [t for t in _TOKEN_SPLIT.split(text.lower()) if t]


def split_sentences(text: str) -> list[str]:
    return [s for s in _SENTENCE_SPLIT.split(text) if s.strip()]


def extract_keywords(sample_answer: str, limit: int = MAX_KEYWORDS) -> list[str]:
    """
    Pick candidate keywords from a model answer.

    Keeps tokens longer than four characters that are not stop words, in
    order of first appearance.
    """
    keywords: list[str] = []
    for token in tokenize(sample_answer):
        if len(token) > 4 and token not in STOP_WORDS and token not in keywords:
            keywords.append(token)
        if len(keywords) >= limit:
            break
    return keywords


def topic_from_source(source: str) -> str:
    """Derive a readable topic name from a source document path."""
    name = PurePosixPath(source.replace("\\", "/")).name or source
    if name.lower().endswith(".pdf"):
        name = name[:-4]
    return re.sub(r"[-_]+", " ", name).strip()


# =============================================================================
# Filtering and ranking
# =============================================================================


def _matches_weeks(item: Item, weeks: list[str]) -> bool:
    if not weeks or ALL_WEEKS in weeks:
        return True
    label = item.week.lower()
    return any(week.lower() in label for week in weeks)


def _matches_materials(item: Item, materials: list[str]) -> bool:
    if not materials:
        return True
    source = item.source.lower()
    return any(material.lower() in source for material in materials)


def filter_items(items: Iterable[Item], config: SessionConfig) -> list[Item]:
    """Apply the week, material and difficulty filters of a config."""
    filtered = [
        item for item in items
        if _matches_weeks(item, config.weeks) and _matches_materials(item, config.materials)
    ]
    if config.difficulty != DifficultyFilter.MIXED:
        filtered = [i for i in filtered if i.difficulty.value == config.difficulty.value]
    return filtered


def tailored_priority(item: Item) -> float:
    """Composite used by tailored-for-me: difficulty weight plus score deficit."""
    return DIFFICULTY_WEIGHTS[item.difficulty] + (1 - item.average_score) * 2


def rank_items(
    items: list[Item],
    focus: FocusStrategy,
    rng: random.Random | None = None,
) -> list[Item]:
    """Order items by focus strategy. Sorting is stable for equal keys."""
    if focus == FocusStrategy.WEAK_AREAS:
        return sorted(items, key=lambda i: i.average_score)

    if focus == FocusStrategy.RECENT_CONTENT:
        return sorted(items, key=lambda i: i.week, reverse=True)

    if focus == FocusStrategy.TAILORED:
        return sorted(items, key=tailored_priority, reverse=True)

    shuffled = list(items)
    (rng or random).shuffle(shuffled)
    return shuffled


def select_items(
    items: Iterable[Item],
    config: SessionConfig,
    rng: random.Random | None = None,
) -> list[Item]:
    """Filter, rank and truncate to config.num_questions."""
    ranked = rank_items(filter_items(items, config), config.focus, rng)
    return ranked[: config.num_questions]
