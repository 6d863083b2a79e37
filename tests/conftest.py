"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests:
sample items, deterministic evaluators, a controllable clock and a
session store wired to in-memory collaborators.
"""
import asyncio
import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings  # noqa: E402
from src.core.errors import EvaluationError  # noqa: E402
from src.core.types import (  # noqa: E402
    ContentType,
    Difficulty,
    FinalStats,
    Item,
    SessionConfig,
    SessionStatus,
)
from src.manager.types import SessionHistoryEntry, SessionOutcome  # noqa: E402
from src.persistence.stores import MemoryStore  # noqa: E402
from src.practice.evaluation import EvaluationResult  # noqa: E402
from src.practice.question_pool import InMemoryQuestionPool  # noqa: E402
from src.practice.session_store import PracticeSessionStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


# =============================================================================
# Fakes
# =============================================================================


class FixedEvaluator:
    """Returns the same score for every answer and records calls."""

    def __init__(self, score: float = 0.8, keyword_matches: list[str] | None = None):
        self.score = score
        self.keyword_matches = keyword_matches or []
        self.calls: list[tuple[str, str]] = []

    async def evaluate(self, item, answer_text):
        self.calls.append((item.id, answer_text))
        return EvaluationResult(
            score=self.score,
            keyword_matches=list(self.keyword_matches),
            feedback="Good answer",
            suggestions=[],
        )


class FailingEvaluator:
    async def evaluate(self, item, answer_text):
        raise EvaluationError("scoring service unavailable")


class GatedEvaluator:
    """Blocks each evaluation until release() so in-flight state can be observed."""

    def __init__(self, score: float = 0.7):
        self.score = score
        self.started = asyncio.Event()
        self._gate = asyncio.Event()

    def release(self):
        self._gate.set()

    async def evaluate(self, item, answer_text):
        self.started.set()
        await self._gate.wait()
        return EvaluationResult(score=self.score, feedback="Released")


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment and the user's data dir."""
    return Settings(
        _env_file=None,
        data_dir=tmp_path / "data",
        storage_backend="memory",
        evaluation_timeout_seconds=2.0,
        pending_evaluation_timeout_seconds=2.0,
    )


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 13, 10, 0, 0))


def make_item(item_id: str, difficulty: str = "medium", **kwargs) -> Item:
    kwargs.setdefault("content", f"Explain concept {item_id}")
    kwargs.setdefault("keywords", ["routing", "protocol", "network"])
    return Item(id=item_id, difficulty=Difficulty(difficulty), **kwargs)


@pytest.fixture
def item_factory():
    return make_item


@pytest.fixture
def sample_items():
    """Ten items: five medium and five hard, with distinct pre-session scores."""
    medium_scores = [0.9, 0.2, 0.6, 0.4, 0.8]
    hard_scores = [0.1, 0.3, 0.5, 0.7, 0.95]
    items = [
        make_item(
            f"m{i}",
            "medium",
            average_score=score,
            week=f"week-{i + 1}",
            topic="Routing" if i % 2 == 0 else "Switching",
            source=f"materials/week-{i + 1}/routing.pdf",
        )
        for i, score in enumerate(medium_scores)
    ]
    items += [
        make_item(
            f"h{i}",
            "hard",
            average_score=score,
            week=f"week-{i + 1}",
            topic="Subnetting",
            source=f"materials/week-{i + 1}/subnetting.pdf",
        )
        for i, score in enumerate(hard_scores)
    ]
    return items


@pytest.fixture
def pool(sample_items):
    return InMemoryQuestionPool(sample_items, course_id="ccna")


@pytest.fixture
def fixed_evaluator():
    return FixedEvaluator(score=0.8, keyword_matches=["routing"])


@pytest.fixture
def failing_evaluator():
    return FailingEvaluator()


@pytest.fixture
def gated_evaluator():
    return GatedEvaluator()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def store_factory(pool, memory_store, settings, clock):
    """Build a session store around the shared pool with a chosen evaluator."""

    def build(evaluator, content_type="open-questions", **kwargs):
        kwargs.setdefault("durable_store", memory_store)
        kwargs.setdefault("settings", settings)
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("rng", random.Random(7))
        return PracticeSessionStore(content_type, pool, evaluator, **kwargs)

    return build


@pytest.fixture
def session_store(store_factory, fixed_evaluator):
    return store_factory(fixed_evaluator)


@pytest.fixture
def entry_factory():
    """Build archived history entries."""

    def build(
        entry_id,
        started_at,
        content_type="open-questions",
        accuracy=50.0,
        minutes=20,
        strengths=(),
        weaknesses=(),
        difficulty="mixed",
        course_id="ccna",
    ):
        return SessionHistoryEntry(
            id=entry_id,
            type=ContentType(content_type),
            course_id=course_id,
            started_at=started_at,
            completed_at=started_at + timedelta(minutes=minutes),
            status=SessionStatus.COMPLETED,
            config=SessionConfig(course_id=course_id, difficulty=difficulty),
            final_stats=FinalStats(
                total_time_ms=minutes * 60_000,
                items_completed=5,
                accuracy=accuracy,
                score=accuracy,
                strengths=list(strengths),
                weaknesses=list(weaknesses),
            ),
            performance=SessionOutcome(strengths=list(strengths), weaknesses=list(weaknesses)),
        )

    return build
