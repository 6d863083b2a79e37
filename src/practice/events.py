"""
Session event channel.

Front ends subscribe to an EventBus to refresh when a session changes.
Publishing is synchronous; a subscriber that raises is logged and skipped.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from loguru import logger


class SessionEventKind(str, Enum):
    STARTED = "started"
    FAILED = "failed"
    PAUSED = "paused"
    RESUMED = "resumed"
    NAVIGATED = "navigated"
    ANSWER_UPDATED = "answer_updated"
    FLAGS_CHANGED = "flags_changed"
    DRAFT_CHANGED = "draft_changed"
    COMPLETED = "completed"
    RESET = "reset"
    RESTORED = "restored"


@dataclass
class SessionEvent:
    kind: SessionEventKind
    session_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    emitted_at: datetime = field(default_factory=datetime.now)


Subscriber = Callable[[SessionEvent], None]


class EventBus:
    """Fan-out of session events to registered callables."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a subscriber. Returns a function that unsubscribes it."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def publish(self, event: SessionEvent) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception as e:  # Intentionally broad - one bad listener must not break the store
                logger.warning(f"Session event subscriber failed on {event.kind.value}: {e}")
