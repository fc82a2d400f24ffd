"""Error types shared by the progression engine.

Business failures (resolved attempts, placement rule violations, rolled
back unlocks) are reported to API callers with HTTP 200 and
``success: false``; NotFoundError maps to 404.
"""

from __future__ import annotations


class ProgressionError(Exception):
    """Base class for progression engine errors."""

    retryable: bool = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AnswerValidationError(ProgressionError):
    """Malformed answer or answer key. Recovered inside the evaluator."""


class NotFoundError(ProgressionError):
    """Unknown student, exercise, unit, session or placement test."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} '{identifier}' not found")


class AttemptAlreadyResolvedError(ProgressionError):
    """An exercise render lifecycle already produced its durable record."""

    def __init__(self, exercise_id: str):
        self.exercise_id = exercise_id
        super().__init__(
            f"Exercise '{exercise_id}' is already resolved in this session"
        )


class PlacementTestError(ProgressionError):
    """Invalid placement test request (bad range, closed test, ...)."""


class UnlockConsistencyError(ProgressionError):
    """A batch unlock could not be applied in full and was rolled back."""

    retryable = True


class TransientNetworkError(ProgressionError):
    """A submission did not reach the server (timeout or transport error)."""

    retryable = True
