"""
Persistence - Versioned snapshots and durable stores.

Components:
- snapshot: SessionSnapshot / ManagerSnapshot models and schema migration
- stores: DurableStore protocol, MemoryStore, JsonFileStore, create_store
- sql_store: SqlSnapshotStore (SQLAlchemy)
"""

from src.persistence.snapshot import (
    SCHEMA_VERSION,
    ManagerSnapshot,
    SessionSnapshot,
    load_manager_snapshot,
    load_session_snapshot,
)
from src.persistence.stores import DurableStore, JsonFileStore, MemoryStore, create_store

__all__ = [
    "SCHEMA_VERSION",
    "SessionSnapshot",
    "ManagerSnapshot",
    "load_session_snapshot",
    "load_manager_snapshot",
    "DurableStore",
    "MemoryStore",
    "JsonFileStore",
    "create_store",
]
