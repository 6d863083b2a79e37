"""
Typed errors raised by the practice engine.

Every public operation either succeeds or raises one of these.
"""

from __future__ import annotations


class PracticeError(Exception):
    """Base class for all engine errors."""


class ValidationError(PracticeError):
    """Malformed config, unknown question, or an empty item pool."""


class StateError(PracticeError):
    """Operation invoked while the session is in the wrong state."""


class EvaluationError(PracticeError):
    """The evaluation capability failed or timed out."""


class PersistenceError(PracticeError):
    """A durable read or write failed."""
