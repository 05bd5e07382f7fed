"""Exception types raised by the quiz session engine."""

from __future__ import annotations


class QuizError(Exception):
    """Base class for quiz engine failures."""


class LoadError(QuizError):
    """Raised when a question set or the subject catalog cannot be loaded."""


class PersistenceError(QuizError):
    """Raised when a snapshot or leaderboard record cannot be read or written."""


class InvalidOperation(QuizError):
    """Raised when an operation is not permitted in the session's current state."""
