"""
Versioned snapshot DTOs for crash recovery.

A SessionSnapshot captures one session store; a ManagerSnapshot captures
the session manager (active session, history, analytics, preferences).
Both carry a schema_version and pass through migrate_* before validation,
so payloads written by older releases keep loading.

Version history:
- 1: flat camelCase payload (id, status, config, questions, progress,
     performance, currentQuestion, lastSyncedAt)
- 2: snake_case payload with content_type, current_answer and saved_at
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from src.core.errors import PersistenceError

SCHEMA_VERSION = 2

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Keys whose meaning changed between version 1 and 2 (after snake-casing)
_V1_RENAMES = {
    "question": "content",
    "ai_score": "score",
    "time_spent": "time_spent_ms",
    "total_time": "total_time_ms",
    "total_time_spent": "total_time_ms",
    "most_productive_time_of_day": "most_productive_hour",
    "improvement_suggestions": "suggestions",
    "answered_questions": "answered_count",
    "skipped_questions": "skipped_count",
    "remaining_time": "remaining_time_ms",
    "time_limit": "time_limit_minutes",
}

# Mappings whose keys are data (topic names), not field names
_OPAQUE_KEYS = {"topic_breakdown"}


def _snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _convert_v1(value: Any, parent: str | None = None) -> Any:
    if isinstance(value, list):
        return [_convert_v1(v, parent) for v in value]
    if not isinstance(value, dict):
        return value

    converted = {}
    for key, inner in value.items():
        if parent in _OPAQUE_KEYS:
            converted[key] = _convert_v1(inner)
            continue
        new_key = _snake(key)
        new_key = _V1_RENAMES.get(new_key, new_key)
        converted[new_key] = _convert_v1(inner, new_key)
    return converted


class SessionSnapshot(BaseModel):
    """Serializable state of one session store."""

    schema_version: int = SCHEMA_VERSION
    id: str
    content_type: str
    status: str
    config: dict[str, Any]
    questions: list[dict[str, Any]] = Field(default_factory=list)
    progress: dict[str, Any] = Field(default_factory=dict)
    performance: dict[str, Any] = Field(default_factory=dict)
    current_answer: str = ""
    error: str | None = None
    saved_at: datetime = Field(default_factory=datetime.now)


class ManagerSnapshot(BaseModel):
    """Serializable state of the session manager."""

    schema_version: int = SCHEMA_VERSION
    active_session: dict[str, Any] | None = None
    history: list[dict[str, Any]] = Field(default_factory=list)
    analytics: dict[str, Any] | None = None
    preferences: dict[str, Any] = Field(default_factory=dict)
    saved_at: datetime = Field(default_factory=datetime.now)


def migrate_session_payload(data: dict[str, Any]) -> dict[str, Any]:
    """Upgrade a raw session payload to the current schema version."""
    version = data.get("schema_version", 1)
    if version > SCHEMA_VERSION:
        raise PersistenceError(f"Snapshot schema {version} is newer than supported {SCHEMA_VERSION}")
    if version == SCHEMA_VERSION:
        return data

    upgraded = _convert_v1(data)
    upgraded.pop("current_question", None)
    upgraded["saved_at"] = upgraded.pop("last_synced_at", None) or datetime.now().isoformat()
    upgraded.setdefault("content_type", "open-questions")
    upgraded["schema_version"] = SCHEMA_VERSION
    return upgraded


def migrate_manager_payload(data: dict[str, Any]) -> dict[str, Any]:
    """Upgrade a raw manager payload to the current schema version."""
    version = data.get("schema_version", 1)
    if version > SCHEMA_VERSION:
        raise PersistenceError(f"Snapshot schema {version} is newer than supported {SCHEMA_VERSION}")
    if version == SCHEMA_VERSION:
        return data

    upgraded = _convert_v1(data)
    upgraded["history"] = upgraded.pop("session_history", upgraded.get("history", []))
    upgraded["saved_at"] = upgraded.pop("last_synced_at", None) or datetime.now().isoformat()
    upgraded["schema_version"] = SCHEMA_VERSION
    return upgraded


def load_session_snapshot(data: dict[str, Any]) -> SessionSnapshot:
    """
    Migrate and validate a stored session payload.

    Raises:
        PersistenceError: If the payload cannot be interpreted
    """
    try:
        return SessionSnapshot.model_validate(migrate_session_payload(data))
    except PydanticValidationError as e:
        raise PersistenceError(f"Invalid session snapshot: {e}") from e


def load_manager_snapshot(data: dict[str, Any]) -> ManagerSnapshot:
    """
    Migrate and validate a stored manager payload.

    Raises:
        PersistenceError: If the payload cannot be interpreted
    """
    try:
        return ManagerSnapshot.model_validate(migrate_manager_payload(data))
    except PydanticValidationError as e:
        raise PersistenceError(f"Invalid manager snapshot: {e}") from e
