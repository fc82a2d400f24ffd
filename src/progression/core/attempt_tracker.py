"""Attempt state machine for one exercise render lifecycle.

States (per session and exercise):

    unanswered --correct----> resolved(true)    record, reveal
    unanswered --incorrect--> first_wrong        no record, retry prompt
    first_wrong --correct---> resolved(true)    record as correct
    first_wrong --incorrect-> resolved(false)   record, reveal
    any open    --skip------> resolved(false)   record with null answer
    any open    --ungraded--> resolved          record, pending review

The tracker is pure: it maps an AttemptState value and an event to an
AttemptTransition. Callers own the state and decide where it lives.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

from progression.core.answer_evaluator import Evaluation
from progression.core.errors import AttemptAlreadyResolvedError

Phase = Literal["unanswered", "first_wrong", "resolved"]

# Incorrect submissions allowed before an answer becomes durable
MAX_ATTEMPTS = 2


@dataclass(frozen=True)
class AttemptState:
    """Attempt progress for one exercise inside one session."""

    session_id: str
    exercise_id: str
    phase: Phase = "unanswered"
    attempt_count: int = 0
    last_outcome: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.phase == "resolved"

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "session_id": self.session_id,
            "exercise_id": self.exercise_id,
            "phase": self.phase,
            "attempt_count": self.attempt_count,
            "last_outcome": self.last_outcome,
        }


@dataclass(frozen=True)
class AttemptTransition:
    """What a submission did and what the caller must do next."""

    state: AttemptState
    record: bool
    is_correct: bool
    graded: bool = True
    reveal_explanation: bool = False
    retry_allowed: bool = False
    show_help: bool = False


def new_attempt(session_id: str, exercise_id: str) -> AttemptState:
    """Fresh state for a newly rendered exercise."""
    return AttemptState(session_id=session_id, exercise_id=exercise_id)


def _ensure_open(state: AttemptState) -> None:
    if state.is_resolved:
        raise AttemptAlreadyResolvedError(state.exercise_id)


def submit(state: AttemptState, evaluation: Evaluation) -> AttemptTransition:
    """Apply an evaluated submission to an attempt state.

    Raises:
        AttemptAlreadyResolvedError: If the exercise already has its
            durable outcome in this lifecycle
    """
    _ensure_open(state)
    attempt_count = state.attempt_count + 1

    if not evaluation.graded:
        resolved = replace(
            state, phase="resolved", attempt_count=attempt_count, last_outcome="ungraded"
        )
        return AttemptTransition(
            state=resolved,
            record=True,
            is_correct=False,
            graded=False,
            reveal_explanation=True,
        )

    if evaluation.is_correct:
        resolved = replace(
            state, phase="resolved", attempt_count=attempt_count, last_outcome="correct"
        )
        return AttemptTransition(
            state=resolved,
            record=True,
            is_correct=True,
            reveal_explanation=True,
        )

    if attempt_count < MAX_ATTEMPTS:
        first_wrong = replace(
            state, phase="first_wrong", attempt_count=attempt_count, last_outcome="incorrect"
        )
        return AttemptTransition(
            state=first_wrong,
            record=False,
            is_correct=False,
            retry_allowed=True,
            show_help=True,
        )

    failed = replace(
        state, phase="resolved", attempt_count=attempt_count, last_outcome="incorrect"
    )
    return AttemptTransition(
        state=failed,
        record=True,
        is_correct=False,
        reveal_explanation=True,
    )


def skip(state: AttemptState) -> AttemptTransition:
    """Give up on an exercise, bypassing the retry leniency.

    Raises:
        AttemptAlreadyResolvedError: If the exercise is already resolved
    """
    _ensure_open(state)
    skipped = replace(state, phase="resolved", last_outcome="skipped")
    return AttemptTransition(
        state=skipped,
        record=True,
        is_correct=False,
        reveal_explanation=True,
    )
