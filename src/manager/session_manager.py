"""
Session manager.

Coordinates practice sessions across content types: keeps at most one
active session, archives finished sessions to history (most recent first),
and derives analytics, goal progress and recommendations from that history.

The manager snapshot (active session, history, analytics, preferences) is
written to the durable store after every mutation and loaded on
construction, so an interrupted session can be recovered after a crash.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Callable
from datetime import datetime

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from config import Settings, get_settings
from src.core.errors import PersistenceError, ValidationError
from src.core.types import ContentType, FinalStats, SessionConfig, SessionStatus, generate_session_id
from src.manager.analytics import compute_analytics, sessions_completed_on
from src.manager.recommendations import HeuristicRecommender, Recommender
from src.manager.types import (
    ActiveProgress,
    ActiveSessionInfo,
    CrossSessionAnalytics,
    GoalProgress,
    HistoryFilter,
    Preferences,
    Recommendation,
    ReminderSettings,
    SessionHistoryEntry,
    SessionOutcome,
    completion_percentage,
)
from src.persistence.snapshot import ManagerSnapshot, load_manager_snapshot
from src.persistence.stores import DurableStore

MANAGER_KEY = "manager"


class SessionManager:
    """Owns session history, cross-session analytics and recommendations."""

    def __init__(
        self,
        durable_store: DurableStore | None = None,
        recommender: Recommender | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.durable_store = durable_store
        self.recommender = recommender or HeuristicRecommender()
        self.settings = settings or get_settings()
        self._clock = clock or datetime.now

        self.active_session: ActiveSessionInfo | None = None
        self.history: list[SessionHistoryEntry] = []
        self.preferences = Preferences(
            default_session_length=self.settings.default_session_length_minutes,
            auto_save_interval=self.settings.auto_save_interval_minutes,
            reminder_settings=ReminderSettings(daily_goal=self.settings.daily_goal),
        )
        self.analytics = CrossSessionAnalytics()
        self.recommendations: list[Recommendation] = []
        # bumped whenever history or goal inputs change
        self._revision = 0

        self._load()

    # =========================================================================
    # Persistence
    # =========================================================================

    def _load(self) -> None:
        if self.durable_store is None:
            return
        try:
            payload = self.durable_store.load(MANAGER_KEY)
            if payload is None:
                return
            snapshot = load_manager_snapshot(payload)
            active = ActiveSessionInfo.from_dict(snapshot.active_session) if snapshot.active_session else None
            history = [SessionHistoryEntry.from_dict(e) for e in snapshot.history]
            preferences = Preferences.model_validate(snapshot.preferences) if snapshot.preferences else None
        except (PersistenceError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable manager snapshot: {e}")
            return

        self.active_session = active
        self.history = history
        self._revision += 1
        if preferences is not None:
            self.preferences = preferences
        self.analytics = self.calculate_analytics()
        logger.debug(f"Loaded manager snapshot with {len(history)} history entries")

    def snapshot(self) -> ManagerSnapshot:
        return ManagerSnapshot(
            active_session=self.active_session.to_dict() if self.active_session else None,
            history=[entry.to_dict() for entry in self.history],
            analytics=self.analytics.to_dict(),
            preferences=self.preferences.model_dump(mode="json"),
            saved_at=self._clock(),
        )

    def _persist(self) -> None:
        if self.durable_store is None:
            return
        try:
            self.durable_store.save(MANAGER_KEY, self.snapshot().model_dump(mode="json"))
        except PersistenceError as e:
            logger.warning(f"Failed to persist session manager: {e}")

    def hydrate(
        self,
        history: list[SessionHistoryEntry] | None = None,
        analytics: CrossSessionAnalytics | None = None,
        preferences: Preferences | None = None,
    ) -> None:
        """Replace state from an external source; omitted parts are kept."""
        if history is not None:
            self.history = list(history)
            self._revision += 1
        if preferences is not None:
            self.preferences = preferences
        self.analytics = analytics if analytics is not None else self.calculate_analytics()
        self._persist()

    # =========================================================================
    # Session coordination
    # =========================================================================

    def start_session(
        self,
        content_type: ContentType | str,
        config: SessionConfig | None = None,
        session_id: str | None = None,
    ) -> str:
        """
        Register a new active session, force-ending any current one.

        Args:
            content_type: Kind of session
            config: Session options (defaults when omitted)
            session_id: Id to use, e.g. the session store's own id

        Returns:
            The active session id
        """
        content_type = ContentType(content_type)
        now = self._clock()

        current = self.active_session
        if current is not None:
            logger.info(f"Ending session {current.id} to start a new {content_type.value} session")
            self.end_session(
                current.id,
                FinalStats(
                    total_time_ms=int((now - current.started_at).total_seconds() * 1000),
                    items_completed=current.progress.current_index,
                    accuracy=0.0,
                ),
            )

        session_id = session_id or generate_session_id(content_type)
        self.active_session = ActiveSessionInfo(
            id=session_id,
            type=content_type,
            config=config or SessionConfig(num_questions=self.settings.default_num_questions),
            started_at=now,
            last_activity_at=now,
        )
        logger.info(f"Session manager tracking {content_type.value} session {session_id}")
        self._persist()
        return session_id

    def end_session(self, session_id: str, final_stats: FinalStats | dict) -> SessionHistoryEntry | None:
        """
        Archive the active session and refresh analytics and recommendations.

        A session id that does not match the active session is ignored.
        """
        active = self.active_session
        if active is None or active.id != session_id:
            logger.debug(f"end_session ignored for non-active session {session_id}")
            return None
        if isinstance(final_stats, dict):
            final_stats = FinalStats.from_dict(final_stats)

        entry = SessionHistoryEntry(
            id=active.id,
            type=active.type,
            course_id=active.config.course_id,
            started_at=active.started_at,
            completed_at=self._clock(),
            status=SessionStatus.COMPLETED,
            config=active.config,
            final_stats=final_stats,
            performance=SessionOutcome(
                strengths=list(final_stats.strengths),
                weaknesses=list(final_stats.weaknesses),
            ),
        )
        self.history.insert(0, entry)
        self.active_session = None
        self._revision += 1

        self.analytics = self.calculate_analytics()
        self.recommendations = self.generate_recommendations()
        entry.performance.recommendations = [r.reason for r in self.recommendations]

        logger.info(
            f"Archived {entry.type.value} session {entry.id} "
            f"(accuracy {final_stats.accuracy:.0f}%, {len(self.history)} in history)"
        )
        self._persist()
        return entry

    async def refresh_insights_async(self) -> tuple[CrossSessionAnalytics, list[Recommendation]]:
        """
        Recompute analytics and recommendations in a worker thread.

        If history or goals change while the worker runs, its result is
        dropped and the state computed by that newer mutation is returned.
        """
        revision = self._revision
        history = copy.deepcopy(self.history)
        daily_goal = self.preferences.reminder_settings.daily_goal
        now = self._clock()

        analytics = await asyncio.to_thread(compute_analytics, history, daily_goal, now)
        recommendations = await asyncio.to_thread(self.recommender.recommend, analytics, history, now)

        if revision != self._revision:
            logger.debug("Discarding stale insights; history changed during refresh")
            return self.analytics, self.recommendations

        self.analytics = analytics
        self.recommendations = recommendations
        self._persist()
        return analytics, recommendations

    def _set_active_status(self, session_id: str, status: SessionStatus) -> bool:
        active = self.active_session
        if active is None or active.id != session_id:
            return False
        active.status = status
        active.last_activity_at = self._clock()
        self._persist()
        return True

    def pause_session(self, session_id: str) -> bool:
        return self._set_active_status(session_id, SessionStatus.PAUSED)

    def resume_session(self, session_id: str) -> bool:
        return self._set_active_status(session_id, SessionStatus.ACTIVE)

    def switch_session_type(self, content_type: ContentType | str) -> str:
        """End the current session and start one of another type with default options."""
        return self.start_session(
            content_type,
            SessionConfig(num_questions=self.settings.default_num_questions),
        )

    def update_session_progress(self, session_id: str, current_index: int, total_items: int) -> bool:
        active = self.active_session
        if active is None or active.id != session_id:
            return False
        active.progress = ActiveProgress(
            current_index=current_index,
            total_items=total_items,
            completion_percentage=completion_percentage(current_index, total_items),
        )
        active.last_activity_at = self._clock()
        self._persist()
        return True

    def get_active_session_info(self) -> ActiveSessionInfo | None:
        return self.active_session

    def recover_session(self) -> ActiveSessionInfo | None:
        """The active session if it was interrupted before completing, else None."""
        active = self.active_session
        if active is not None and active.status != SessionStatus.COMPLETED:
            return active
        return None

    # =========================================================================
    # History
    # =========================================================================

    def get_session_history(self, history_filter: HistoryFilter | None = None) -> list[SessionHistoryEntry]:
        if history_filter is None:
            return list(self.history)
        return [entry for entry in self.history if history_filter.matches(entry)]

    def get_session_by_id(self, session_id: str) -> SessionHistoryEntry | None:
        return next((entry for entry in self.history if entry.id == session_id), None)

    def delete_session(self, session_id: str) -> bool:
        remaining = [entry for entry in self.history if entry.id != session_id]
        if len(remaining) == len(self.history):
            return False
        self.history = remaining
        self._revision += 1
        self.analytics = self.calculate_analytics()
        logger.info(f"Deleted session {session_id} from history")
        self._persist()
        return True

    # =========================================================================
    # Analytics and recommendations
    # =========================================================================

    def calculate_analytics(self) -> CrossSessionAnalytics:
        return compute_analytics(
            self.history,
            self.preferences.reminder_settings.daily_goal,
            self._clock(),
        )

    def generate_recommendations(self) -> list[Recommendation]:
        self.recommendations = self.recommender.recommend(self.analytics, self.history, self._clock())
        return self.recommendations

    # =========================================================================
    # Goals and preferences
    # =========================================================================

    def set_daily_goal(self, sessions: int) -> None:
        """
        Set the number of sessions per day the learner aims for.

        Raises:
            ValidationError: If sessions is less than 1
        """
        if sessions < 1:
            raise ValidationError(f"Daily goal must be at least 1, got {sessions}")
        self.preferences.reminder_settings.daily_goal = sessions
        self._revision += 1
        self.analytics = self.calculate_analytics()
        self._persist()

    def check_goal_progress(self) -> GoalProgress:
        """Completed sessions today against the daily goal."""
        target = self.preferences.reminder_settings.daily_goal
        completed = sessions_completed_on(self.history, self._clock().date())
        percentage = min(completed / target * 100, 100.0) if target > 0 else 0.0
        return GoalProgress(completed=completed, target=target, percentage=percentage)

    def update_preferences(self, **changes) -> Preferences:
        """
        Merge preference changes.

        Raises:
            ValidationError: If the merged preferences are invalid
        """
        merged = self.preferences.model_dump()
        for key, value in changes.items():
            if key == "reminder_settings" and isinstance(value, dict):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value
        try:
            self.preferences = Preferences.model_validate(merged)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid preferences: {e}") from e

        self._revision += 1
        self.analytics = self.calculate_analytics()
        self._persist()
        return self.preferences

    def get_preferences(self) -> Preferences:
        return self.preferences
