"""
Practice session store.

One PracticeSessionStore runs one session at a time for one content type:
item selection, navigation, answer submission and evaluation, running item
statistics, progress aggregates and performance.

State machine:
    idle --start--> active <--pause/resume--> paused
    active --(past last item | end)--> completed
    start with no matching items --> failed
    reset --> idle (from any state)

Evaluations run as tasks so navigation and other answers can proceed while
one is in flight. When the same question is submitted or edited again
before its evaluation returns, the last submission wins: each write bumps a
per-question revision and results for older revisions are discarded.

Item statistics are updated on the session's own copies of the items, at
most once per question per session (a skipped item that is answered later
folds in the answer without counting as seen twice).
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable
from datetime import datetime
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from config import Settings, get_settings
from src.core.errors import (
    EvaluationError,
    PersistenceError,
    PracticeError,
    StateError,
    ValidationError,
)
from src.core.selection import count_words, select_items
from src.core.types import (
    Answer,
    ContentType,
    EvaluationStatus,
    FinalStats,
    Item,
    Performance,
    PracticeMode,
    Progress,
    SessionConfig,
    SessionStats,
    SessionStatus,
    generate_session_id,
)
from src.persistence.snapshot import SessionSnapshot, load_session_snapshot
from src.persistence.stores import DurableStore
from src.practice.evaluation import (
    FALLBACK_FEEDBACK,
    EvaluationResult,
    Evaluator,
    evaluate_with_timeout,
)
from src.practice.events import EventBus, SessionEvent, SessionEventKind
from src.practice.performance import WEAKNESS_THRESHOLD, calculate_performance, summarize_topics
from src.practice.question_pool import ItemFilter, QuestionPoolProvider

_RUNNING = (SessionStatus.ACTIVE, SessionStatus.PAUSED)


class PracticeSessionStore:
    """
    Owns the lifecycle of one practice session for a content type.

    Collaborators are injected: a question pool, an evaluator, and
    optionally a durable store for crash recovery and an event bus for
    front ends.
    """

    def __init__(
        self,
        content_type: ContentType | str,
        pool: QuestionPoolProvider,
        evaluator: Evaluator,
        durable_store: DurableStore | None = None,
        events: EventBus | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ):
        self.content_type = ContentType(content_type)
        self.pool = pool
        self.evaluator = evaluator
        self.durable_store = durable_store
        self.events = events or EventBus()
        self.settings = settings or get_settings()
        self._clock = clock or datetime.now
        self._rng = rng or random.Random()
        self._generation = 0
        self._clear()

    def _clear(self) -> None:
        self.session_id: str | None = None
        self.status = SessionStatus.IDLE
        self.config: SessionConfig | None = None
        self.questions: list[Item] = []
        self.progress = Progress()
        self.performance = Performance()
        self.current_answer = ""
        self.error: str | None = None
        self.started_at: datetime | None = None
        self.completed_at: datetime | None = None

        self._revisions: dict[str, int] = {}
        self._stats_recorded: dict[str, bool] = {}  # question id -> answered
        self._in_flight: set[asyncio.Task] = set()
        self._active_since: datetime | None = None
        self._active_ms = 0

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _require_status(self, *allowed: SessionStatus, action: str) -> None:
        if self.status not in allowed:
            expected = "/".join(s.value for s in allowed)
            raise StateError(f"Cannot {action} while session is {self.status.value} (needs {expected})")

    def _item(self, question_id: str) -> Item:
        for item in self.questions:
            if item.id == question_id:
                return item
        raise ValidationError(f"Question {question_id} is not part of this session")

    def _publish(self, kind: SessionEventKind, **payload: Any) -> None:
        self.events.publish(
            SessionEvent(kind=kind, session_id=self.session_id or "", payload=payload, emitted_at=self._clock())
        )

    def _touch(self) -> None:
        self.progress.last_updated = self._clock()

    def _persist(self) -> None:
        if self.durable_store is None or self.session_id is None:
            return
        try:
            self.durable_store.save(self.session_id, self.snapshot().model_dump(mode="json"))
        except PersistenceError as e:
            logger.warning(f"Failed to persist session {self.session_id}: {e}")

    def _coerce_config(self, config: SessionConfig | dict | None) -> SessionConfig:
        if config is None:
            return SessionConfig(num_questions=self.settings.default_num_questions)
        if isinstance(config, SessionConfig):
            return config
        try:
            return SessionConfig.model_validate(config)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid session config: {e}") from e

    # =========================================================================
    # Session timer
    # =========================================================================

    def _elapsed_active_ms(self) -> int:
        elapsed = self._active_ms
        if self._active_since is not None:
            elapsed += int((self._clock() - self._active_since).total_seconds() * 1000)
        return elapsed

    def _stop_timer(self) -> None:
        self._active_ms = self._elapsed_active_ms()
        self._active_since = None

    def _time_limit_ms(self) -> int | None:
        if self.config is None or self.config.practice_mode != PracticeMode.EXAM:
            return None
        if self.config.time_limit_minutes is None:
            return None
        return int(self.config.time_limit_minutes * 60_000)

    def remaining_time_ms(self) -> int | None:
        """Time left in an exam-mode session, None when untimed. Pauses do not count."""
        limit = self._time_limit_ms()
        if limit is None:
            return None
        remaining = max(0, limit - self._elapsed_active_ms())
        self.progress.remaining_time_ms = remaining
        return remaining

    async def check_time_limit(self) -> bool:
        """End the session if its exam time limit is used up. Returns True if it ended."""
        if self.status != SessionStatus.ACTIVE or self.remaining_time_ms() != 0:
            return False
        logger.info(f"Time limit reached for session {self.session_id}")
        await self.end_session()
        return True

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start_session(self, config: SessionConfig | dict | None = None) -> str:
        """
        Select items and start a new session.

        Args:
            config: Session options (model, dict, or None for defaults)

        Returns:
            The new session id

        Raises:
            StateError: If a session is already running
            ValidationError: If the config is malformed or no items match
        """
        self._require_status(
            SessionStatus.IDLE, SessionStatus.COMPLETED, SessionStatus.FAILED, action="start a session"
        )
        config = self._coerce_config(config)

        try:
            candidates = await self.pool.fetch_items(ItemFilter.from_config(config))
        except PracticeError:
            raise
        except Exception as e:  # Intentionally broad - a pool fault fails the start, not the process
            logger.error(f"Question pool fetch failed: {e}")
            raise ValidationError(f"Question pool unavailable: {e}") from e

        selected = select_items(candidates, config, self._rng)

        self._generation += 1
        self._clear()
        self.session_id = generate_session_id(self.content_type)
        self.config = config

        if not selected:
            self.status = SessionStatus.FAILED
            self.error = (
                f"No questions available for weeks={config.weeks or 'all'}, "
                f"materials={config.materials or 'all'}, difficulty={config.difficulty.value}"
            )
            logger.warning(f"Session {self.session_id} failed to start: {self.error}")
            self._publish(SessionEventKind.FAILED, error=self.error)
            self._persist()
            raise ValidationError(self.error)

        now = self._clock()
        self.questions = selected
        self.progress = Progress(total_questions=len(selected), started_at=now, last_updated=now)
        self.progress.remaining_time_ms = self._time_limit_ms()
        self.status = SessionStatus.ACTIVE
        self.started_at = now
        self._active_since = now

        logger.info(
            f"Started {self.content_type.value} session {self.session_id} "
            f"with {len(selected)} questions (focus={config.focus.value})"
        )
        self._publish(SessionEventKind.STARTED, total_questions=len(selected))
        self._persist()
        return self.session_id

    def pause_session(self) -> None:
        """Pause the session timer. In-flight evaluations keep running."""
        self._require_status(SessionStatus.ACTIVE, action="pause")
        self._stop_timer()
        self.remaining_time_ms()
        self.status = SessionStatus.PAUSED
        self._touch()
        logger.info(f"Paused session {self.session_id}")
        self._publish(SessionEventKind.PAUSED)
        self._persist()

    def resume_session(self) -> None:
        self._require_status(SessionStatus.PAUSED, action="resume")
        self._active_since = self._clock()
        self.status = SessionStatus.ACTIVE
        self._touch()
        logger.info(f"Resumed session {self.session_id}")
        self._publish(SessionEventKind.RESUMED)
        self._persist()

    def _should_await_pending(self) -> bool:
        if self.config is not None and self.config.await_pending_evaluations is not None:
            return self.config.await_pending_evaluations
        return self.settings.await_pending_evaluations

    async def _await_in_flight(self) -> None:
        timeout = self.settings.pending_evaluation_timeout_seconds
        _, pending = await asyncio.wait(set(self._in_flight), timeout=timeout)
        if pending:
            logger.warning(
                f"{len(pending)} evaluation(s) still running after {timeout}s; "
                f"finalizing session {self.session_id} without them"
            )

    async def end_session(self) -> Performance:
        """
        Finalize performance and complete the session.

        Pending evaluations are awaited first only when configured to.
        Ending an already completed session returns its performance.

        Raises:
            StateError: If no session is running
        """
        if self.status == SessionStatus.COMPLETED:
            return self.performance
        self._require_status(*_RUNNING, action="end a session")

        if self._in_flight and self._should_await_pending():
            await self._await_in_flight()

        self._stop_timer()
        self.remaining_time_ms()
        self.performance = calculate_performance(
            self.progress.answers, self.questions, self.progress.time_spent_ms, self.performance
        )
        self.status = SessionStatus.COMPLETED
        self.completed_at = self._clock()
        self._touch()

        logger.info(
            f"Completed session {self.session_id}: "
            f"{self.progress.answered_count}/{self.progress.total_questions} answered, "
            f"score {self.performance.overall_score:.2f}"
        )
        self._publish(SessionEventKind.COMPLETED, overall_score=self.performance.overall_score)
        self._persist()
        return self.performance

    def reset_session(self) -> None:
        """Return to idle. Results of evaluations still in flight are discarded."""
        previous_id = self.session_id
        self._generation += 1
        self._clear()

        if previous_id and self.durable_store is not None:
            try:
                self.durable_store.delete(previous_id)
            except PersistenceError as e:
                logger.warning(f"Failed to delete snapshot for session {previous_id}: {e}")

        logger.debug(f"Reset {self.content_type.value} session store")
        self._publish(SessionEventKind.RESET, previous_session_id=previous_id)

    # =========================================================================
    # Navigation
    # =========================================================================

    def get_current_question(self) -> Item | None:
        if self.status == SessionStatus.IDLE:
            return None
        index = self.progress.current_index
        if 0 <= index < len(self.questions):
            return self.questions[index]
        return None

    def _go_to(self, index: int) -> Item:
        self.progress.current_index = index
        question = self.questions[index]
        existing = self.progress.find_answer(question.id)
        self.current_answer = existing.user_answer if existing else ""
        self._touch()

        logger.debug(f"Session {self.session_id} moved to question {index + 1}/{len(self.questions)}")
        self._publish(SessionEventKind.NAVIGATED, current_index=index, question_id=question.id)
        self._persist()
        return question

    async def move_to_next_question(self) -> Item | None:
        """Advance one item. Moving past the last item ends the session and returns None."""
        self._require_status(*_RUNNING, action="navigate")
        if self.progress.current_index >= len(self.questions) - 1:
            await self.end_session()
            return None
        return self._go_to(self.progress.current_index + 1)

    def move_to_previous_question(self) -> Item | None:
        self._require_status(*_RUNNING, action="navigate")
        if self.progress.current_index <= 0:
            return self.get_current_question()
        return self._go_to(self.progress.current_index - 1)

    def jump_to_question(self, index: int) -> Item:
        """Move to an item by position, clamped to the session's range."""
        self._require_status(*_RUNNING, action="navigate")
        clamped = max(0, min(index, len(self.questions) - 1))
        return self._go_to(clamped)

    # =========================================================================
    # Flags and draft
    # =========================================================================

    def flag_question(self, question_id: str) -> None:
        self._require_status(*_RUNNING, SessionStatus.COMPLETED, action="flag a question")
        self._item(question_id)
        if question_id in self.progress.flagged_questions:
            return
        self.progress.flagged_questions.append(question_id)
        self._touch()
        self._publish(SessionEventKind.FLAGS_CHANGED, flagged=list(self.progress.flagged_questions))
        self._persist()

    def unflag_question(self, question_id: str) -> None:
        self._require_status(*_RUNNING, SessionStatus.COMPLETED, action="unflag a question")
        if question_id not in self.progress.flagged_questions:
            return
        self.progress.flagged_questions.remove(question_id)
        self._touch()
        self._publish(SessionEventKind.FLAGS_CHANGED, flagged=list(self.progress.flagged_questions))
        self._persist()

    def update_current_answer(self, text: str) -> None:
        self.current_answer = text
        self._publish(SessionEventKind.DRAFT_CHANGED, length=len(text))

    # =========================================================================
    # Answers and evaluation
    # =========================================================================

    def _next_revision(self, question_id: str) -> int:
        revision = self._revisions.get(question_id, 0) + 1
        self._revisions[question_id] = revision
        return revision

    def _upsert(self, answer: Answer) -> None:
        answers = self.progress.answers
        for i, existing in enumerate(answers):
            if existing.question_id == answer.question_id:
                answers[i] = answer
                break
        else:
            answers.append(answer)
        self._recompute_progress()

    def _recompute_progress(self) -> None:
        progress = self.progress
        answered = [a for a in progress.answers if not a.is_blank]
        count = len(answered)

        progress.answered_count = count
        progress.skipped_count = len(progress.answers) - count
        progress.time_spent_ms = sum(a.time_spent_ms for a in progress.answers)
        progress.average_time_per_question = progress.time_spent_ms / count if count else 0.0
        progress.average_word_count = sum(a.word_count for a in answered) / count if count else 0.0
        progress.average_score = sum(a.score or 0.0 for a in answered) / count if count else 0.0
        self._touch()

    def _publish_answer(self, answer: Answer) -> None:
        self._publish(
            SessionEventKind.ANSWER_UPDATED,
            question_id=answer.question_id,
            evaluation_status=answer.evaluation_status.value,
            revision=answer.revision,
            score=answer.score,
        )

    def _record_item_stats(self, item: Item, answer: Answer) -> None:
        answered = not answer.is_blank
        recorded = self._stats_recorded.get(item.id)
        if recorded is None:
            item.record_attempt(answer.score or 0.0, answer.word_count, answer.time_spent_ms, answered)
        elif not recorded and answered:
            item.record_attempt(
                answer.score or 0.0, answer.word_count, answer.time_spent_ms, True, count_seen=False
            )
        else:
            return
        self._stats_recorded[item.id] = answered

    def _apply_min_words(self, answer: Answer) -> None:
        minimum = self.config.require_min_words if self.config else None
        if not minimum or answer.is_blank or answer.word_count >= minimum:
            return
        note = f"Aim for at least {minimum} words (this answer has {answer.word_count})."
        if note not in answer.suggestions:
            answer.suggestions.append(note)

    def _apply_result(
        self,
        item: Item,
        answer: Answer,
        result: EvaluationResult | None,
        generation: int,
    ) -> bool:
        if generation != self._generation or self._revisions.get(answer.question_id) != answer.revision:
            logger.debug(f"Discarding stale evaluation for {answer.question_id} (revision {answer.revision})")
            return False

        if result is None:
            answer.evaluation_status = EvaluationStatus.FAILED
            answer.score = None
            answer.feedback = FALLBACK_FEEDBACK
        else:
            answer.evaluation_status = EvaluationStatus.COMPLETED
            answer.score = result.score
            answer.keyword_matches = list(result.keyword_matches)
            answer.feedback = result.feedback or None
            answer.suggestions = list(result.suggestions)
        self._apply_min_words(answer)

        self._record_item_stats(item, answer)
        self._recompute_progress()
        if self.status == SessionStatus.COMPLETED:
            self.performance = calculate_performance(
                self.progress.answers, self.questions, self.progress.time_spent_ms, self.performance
            )

        self._publish_answer(answer)
        self._persist()
        return True

    async def _run_evaluation(self, item: Item, answer: Answer, generation: int) -> Answer:
        try:
            result = await evaluate_with_timeout(
                self.evaluator, item, answer.user_answer, self.settings.evaluation_timeout_seconds
            )
        except EvaluationError as e:
            logger.warning(f"Evaluation failed for question {item.id}: {e}")
            result = None
        self._apply_result(item, answer, result, generation)
        return answer

    async def _evaluate(self, item: Item, answer: Answer) -> Answer:
        generation = self._generation
        if answer.is_blank or not self.config.enable_ai_evaluation:
            score = 0.0 if answer.is_blank else self.settings.default_neutral_score
            self._apply_result(item, answer, EvaluationResult(score=score), generation)
            return answer

        answer.evaluation_status = EvaluationStatus.EVALUATING
        self._publish_answer(answer)

        task = asyncio.create_task(self._run_evaluation(item, answer, generation))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return await asyncio.shield(task)

    async def submit_answer(self, question_id: str, text: str, time_spent_ms: int = 0) -> Answer:
        """
        Record and evaluate an answer, replacing any earlier one for the question.

        Args:
            question_id: Id of a question in this session
            text: Answer text (blank means skipped)
            time_spent_ms: Time spent on this answer

        Returns:
            The answer currently stored for the question

        Raises:
            StateError: If the session is not active
            ValidationError: If the question is unknown or the time is negative
        """
        self._require_status(SessionStatus.ACTIVE, action="submit an answer")
        item = self._item(question_id)
        if time_spent_ms < 0:
            raise ValidationError(f"time_spent_ms must be >= 0, got {time_spent_ms}")

        answer = Answer(
            question_id=question_id,
            user_answer=text,
            word_count=count_words(text),
            time_spent_ms=time_spent_ms,
            timestamp=self._clock(),
            revision=self._next_revision(question_id),
        )
        self._upsert(answer)
        self._publish_answer(answer)

        await self._evaluate(item, answer)
        return self.progress.find_answer(question_id) or answer

    async def edit_answer(self, question_id: str, text: str) -> Answer:
        """
        Replace the text of an existing answer and evaluate it again.

        Raises:
            StateError: If the session is not active
            ValidationError: If no answer exists for the question
        """
        self._require_status(SessionStatus.ACTIVE, action="edit an answer")
        existing = self.progress.find_answer(question_id)
        if existing is None:
            raise ValidationError(f"No answer to edit for question {question_id}")
        item = self._item(question_id)

        answer = Answer(
            question_id=question_id,
            user_answer=text,
            word_count=count_words(text),
            time_spent_ms=existing.time_spent_ms,
            timestamp=self._clock(),
            revision=self._next_revision(question_id),
        )
        self._upsert(answer)
        self._publish_answer(answer)

        await self._evaluate(item, answer)
        return self.progress.find_answer(question_id) or answer

    async def skip_question(self) -> Item | None:
        """Record a blank answer for the current item and move on."""
        current = self.get_current_question()
        if current is None:
            raise StateError("No current question to skip")
        await self.submit_answer(current.id, "", 0)
        return await self.move_to_next_question()

    @property
    def is_evaluating(self) -> bool:
        return bool(self._in_flight)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_evaluation_feedback(self, question_id: str) -> EvaluationResult | None:
        """Evaluation outcome for a question, None until one is available."""
        answer = self.progress.find_answer(question_id)
        if answer is None or answer.evaluation_status not in (
            EvaluationStatus.COMPLETED,
            EvaluationStatus.FAILED,
        ):
            return None
        return EvaluationResult(
            score=answer.score or 0.0,
            keyword_matches=list(answer.keyword_matches),
            feedback=answer.feedback or "",
            suggestions=list(answer.suggestions),
        )

    def calculate_progress(self) -> Progress:
        self._recompute_progress()
        self.remaining_time_ms()
        return self.progress

    def calculate_performance(self) -> Performance:
        self.performance = calculate_performance(
            self.progress.answers, self.questions, self.progress.time_spent_ms, self.performance
        )
        return self.performance

    def get_session_stats(self) -> SessionStats:
        progress = self.progress
        return SessionStats(
            total_time_ms=progress.time_spent_ms,
            questions_answered=progress.answered_count,
            average_score=progress.average_score,
            questions_remaining=max(0, len(self.questions) - len(progress.answers)),
            average_word_count=progress.average_word_count,
        )

    def get_answered_questions(self) -> list[Item]:
        answered = {a.question_id for a in self.progress.answers if not a.is_blank}
        return [q for q in self.questions if q.id in answered]

    def get_unanswered_questions(self) -> list[Item]:
        answered = {a.question_id for a in self.progress.answers if not a.is_blank}
        return [q for q in self.questions if q.id not in answered]

    def get_flagged_questions(self) -> list[Item]:
        by_id = {q.id: q for q in self.questions}
        return [by_id[qid] for qid in self.progress.flagged_questions if qid in by_id]

    def get_low_scoring_answers(self, threshold: float | None = None) -> list[Answer]:
        """Scored, non-blank answers below the threshold (settings default)."""
        if threshold is None:
            threshold = self.settings.low_score_threshold
        return [
            a for a in self.progress.answers
            if not a.is_blank and a.score is not None and a.score < threshold
        ]

    def build_final_stats(self) -> FinalStats:
        """Summarize the session for the session manager's history."""
        performance = self.calculate_performance()
        answered = [a for a in self.progress.answers if not a.is_blank]
        passed = [a for a in answered if (a.score or 0.0) >= WEAKNESS_THRESHOLD]
        strengths, weaknesses = summarize_topics(performance)

        return FinalStats(
            total_time_ms=self._elapsed_active_ms(),
            items_completed=len(answered),
            accuracy=len(passed) / len(answered) * 100 if answered else 0.0,
            score=performance.overall_score * 100 if answered else None,
            strengths=strengths,
            weaknesses=weaknesses,
        )

    # =========================================================================
    # Snapshots
    # =========================================================================

    def snapshot(self) -> SessionSnapshot:
        """
        Capture the session as a versioned snapshot.

        Raises:
            StateError: If there is no session to capture
        """
        if self.session_id is None:
            raise StateError("No session to snapshot")
        self.remaining_time_ms()
        return SessionSnapshot(
            id=self.session_id,
            content_type=self.content_type.value,
            status=self.status.value,
            config=self.config.model_dump(mode="json") if self.config else {},
            questions=[q.to_dict() for q in self.questions],
            progress=self.progress.to_dict(),
            performance=self.performance.to_dict(),
            current_answer=self.current_answer,
            error=self.error,
            saved_at=self._clock(),
        )

    def restore(self, snapshot: SessionSnapshot | dict) -> None:
        """
        Rebuild the store from a snapshot.

        A session that was active comes back paused. Answers whose evaluation
        was interrupted are marked failed so they can be edited.

        Raises:
            StateError: If a session is running
            ValidationError: If the snapshot belongs to another content type
            PersistenceError: If the snapshot cannot be interpreted
        """
        self._require_status(
            SessionStatus.IDLE, SessionStatus.COMPLETED, SessionStatus.FAILED, action="restore a session"
        )
        if isinstance(snapshot, dict):
            snapshot = load_session_snapshot(snapshot)
        if snapshot.content_type != self.content_type.value:
            raise ValidationError(
                f"Snapshot is for {snapshot.content_type}, store handles {self.content_type.value}"
            )

        try:
            config = SessionConfig.model_validate(snapshot.config)
            questions = [Item.from_dict(q) for q in snapshot.questions]
            progress = Progress.from_dict(snapshot.progress) if snapshot.progress else Progress()
            performance = Performance.from_dict(snapshot.performance) if snapshot.performance else Performance()
            status = SessionStatus(snapshot.status)
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Cannot restore session {snapshot.id}: {e}") from e

        self._generation += 1
        self._clear()
        self.session_id = snapshot.id
        self.config = config
        self.questions = questions
        self.progress = progress
        self.performance = performance
        self.current_answer = snapshot.current_answer
        self.error = snapshot.error
        self.started_at = progress.started_at
        self.status = SessionStatus.PAUSED if status == SessionStatus.ACTIVE else status

        progress.total_questions = len(questions)
        progress.current_index = max(0, min(progress.current_index, len(questions)))
        for answer in progress.answers:
            self._revisions[answer.question_id] = answer.revision
            if answer.evaluation_status in (EvaluationStatus.PENDING, EvaluationStatus.EVALUATING):
                answer.evaluation_status = EvaluationStatus.FAILED
                answer.feedback = FALLBACK_FEEDBACK
            else:
                self._stats_recorded[answer.question_id] = not answer.is_blank

        limit = self._time_limit_ms()
        if limit is not None and progress.remaining_time_ms is not None:
            self._active_ms = limit - progress.remaining_time_ms
        else:
            self._active_ms = progress.time_spent_ms

        logger.info(f"Restored session {self.session_id} ({self.status.value}, {len(progress.answers)} answers)")
        self._publish(SessionEventKind.RESTORED, status=self.status.value)
        self._persist()

    def restore_from_store(self, session_id: str) -> bool:
        """Load and restore a session from the durable store. Returns False if unavailable."""
        if self.durable_store is None:
            return False
        try:
            payload = self.durable_store.load(session_id)
            if payload is None:
                return False
            self.restore(payload)
        except PersistenceError as e:
            logger.warning(f"Could not recover session {session_id}: {e}")
            return False
        return True
