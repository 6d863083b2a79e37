"""
Question pool providers.

The session store pulls candidate items through a QuestionPoolProvider.
Providers are read-only: they hand out copies, so per-session statistic
updates never leak back into the pool.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from loguru import logger

from src.core.errors import ValidationError
from src.core.selection import extract_keywords, topic_from_source
from src.core.types import Difficulty, DifficultyFilter, Item, SessionConfig


@dataclass
class ItemFilter:
    """Coarse filter passed to the pool. Focus ranking happens in the store."""

    course_id: str = ""
    weeks: list[str] = field(default_factory=list)
    materials: list[str] = field(default_factory=list)
    difficulty: DifficultyFilter = DifficultyFilter.MIXED

    @classmethod
    def from_config(cls, config: SessionConfig) -> ItemFilter:
        return cls(
            course_id=config.course_id,
            weeks=list(config.weeks),
            materials=list(config.materials),
            difficulty=config.difficulty,
        )


class QuestionPoolProvider(Protocol):
    """Protocol for item sources."""

    async def fetch_items(self, item_filter: ItemFilter) -> list[Item]:
        """Return candidate items with their historical stats."""
        ...


class InMemoryQuestionPool:
    """Pool over a fixed list of items, optionally keyed by course."""

    def __init__(self, items: list[Item], course_id: str = ""):
        self._items = list(items)
        self.course_id = course_id

    def __len__(self) -> int:
        return len(self._items)

    async def fetch_items(self, item_filter: ItemFilter) -> list[Item]:
        if item_filter.course_id and self.course_id and item_filter.course_id != self.course_id:
            return []
        return [copy.deepcopy(item) for item in self._items]


def item_from_record(record: dict) -> Item:
    """
    Build an Item from a question-bank record.

    Accepts either "content" or "question" for the prompt text. Topic and
    keywords are derived from the source path and sample answer when the
    record does not carry them.

    Raises:
        ValidationError: If the record has no id or prompt, or a bad difficulty
    """
    item_id = record.get("id")
    content = record.get("content") or record.get("question")
    if not item_id or not content:
        raise ValidationError(f"Question record missing id or content: {record!r}")

    try:
        difficulty = Difficulty(record.get("difficulty", "medium"))
    except ValueError as e:
        raise ValidationError(f"Unknown difficulty in question {item_id}: {e}") from e

    source = record.get("source", "")
    sample_answer = record.get("sample_answer") or record.get("sampleAnswer") or ""
    return Item(
        id=str(item_id),
        content=content,
        difficulty=difficulty,
        topic=record.get("topic") or topic_from_source(source),
        keywords=list(record.get("keywords") or extract_keywords(sample_answer)),
        week=record.get("week", ""),
        source=source,
        sample_answer=sample_answer,
        options=list(record.get("options", [])),
        correct_answer=record.get("correct_answer") or record.get("correctAnswer"),
        times_seen=int(record.get("times_seen", 0)),
        times_answered=int(record.get("times_answered", 0)),
        average_score=float(record.get("average_score", 0.0)),
        average_word_count=float(record.get("average_word_count", 0.0)),
        average_response_time=float(record.get("average_response_time", 0.0)),
    )


class JsonQuestionPool(InMemoryQuestionPool):
    """
    Pool loaded from a JSON question bank.

    The file holds either a list of records or {"course_id": ..., "questions": [...]}.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ValidationError(f"Cannot read question bank {self.path}: {e}") from e

        if isinstance(data, dict):
            course_id = data.get("course_id", "")
            records = data.get("questions", [])
        else:
            course_id = ""
            records = data

        super().__init__([item_from_record(r) for r in records], course_id=course_id)
        logger.info(f"Loaded {len(self)} questions from {self.path}")
