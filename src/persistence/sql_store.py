"""
SQLAlchemy-backed snapshot store.

One row per snapshot key in the practice_snapshots table; the payload is
stored as JSON text. Works with any SQLAlchemy URL (sqlite by default).
"""

from __future__ import annotations

import json
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy import String, Text, create_engine, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from src.core.errors import PersistenceError


class Base(DeclarativeBase):
    pass


class SnapshotRecord(Base):
    """Stored snapshot row."""

    __tablename__ = "practice_snapshots"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=func.now(), onupdate=func.now())


class SqlSnapshotStore:
    """Durable store over a relational database."""

    def __init__(self, database_url: str, echo: bool = False):
        try:
            self.engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Cannot open snapshot database: {e}") from e
        self._session_factory = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        logger.debug(f"Snapshot table ready at {self.engine.url}")

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Snapshot database error: {e}") from e
        finally:
            session.close()

    def save(self, key: str, payload: dict[str, Any]) -> None:
        try:
            body = json.dumps(payload, default=str)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Snapshot {key} is not serializable: {e}") from e

        with self.session_scope() as session:
            record = session.get(SnapshotRecord, key)
            if record is None:
                session.add(SnapshotRecord(key=key, payload=body))
            else:
                record.payload = body

    def load(self, key: str) -> dict[str, Any] | None:
        with self.session_scope() as session:
            record = session.get(SnapshotRecord, key)
            body = record.payload if record is not None else None
        if body is None:
            return None
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Corrupt snapshot {key}: {e}") from e

    def delete(self, key: str) -> bool:
        with self.session_scope() as session:
            record = session.get(SnapshotRecord, key)
            if record is None:
                return False
            session.delete(record)
            return True

    def list_keys(self) -> list[str]:
        with self.session_scope() as session:
            return list(session.scalars(select(SnapshotRecord.key).order_by(SnapshotRecord.key)))
