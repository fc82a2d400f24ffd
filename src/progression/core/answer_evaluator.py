"""Answer evaluation module.

Responsibilities:
- Decide correctness of a raw answer for choice, fill_blank and matching
  exercises using deterministic comparison
- Report `application` answers as ungraded (manual review)
- Fail closed on malformed answer keys or answers: never raise

Answer shapes:
- choice: int option index (NO_SELECTION when nothing was picked)
- fill_blank: list[str], one entry per blank, in order
- matching: {left_index: right_index} (list form also accepted)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Literal

import structlog

from progression.core.errors import AnswerValidationError
from progression.core.models import Exercise

logger = structlog.get_logger(__name__)

# =============================================================================
# TYPES
# =============================================================================

Outcome = Literal["correct", "incorrect", "ungraded"]

# "No selection" for choice exercises. FALLBACK_NO_SELECTION is used when an
# answer key itself holds NO_SELECTION, so an empty pick never matches it.
NO_SELECTION = -1
FALLBACK_NO_SELECTION = -2

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class Evaluation:
    """Result of evaluating one raw answer."""

    exercise_id: str
    outcome: Outcome
    warning: str | None = None

    @property
    def is_correct(self) -> bool:
        return self.outcome == "correct"

    @property
    def graded(self) -> bool:
        return self.outcome != "ungraded"


# =============================================================================
# NORMALIZATION
# =============================================================================


def no_selection_for(correct_answer: Any) -> int:
    """Sentinel for an empty choice submission, distinct from the key."""
    if correct_answer == NO_SELECTION:
        return FALLBACK_NO_SELECTION
    return NO_SELECTION


def _normalize_choice_index(value: Any) -> int | None:
    """Normalize a choice index to int, or None if invalid/empty."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        stripped = value.strip().lower()
        if stripped == "" or stripped in ("null", "none"):
            return None
        try:
            return int(stripped)
        except ValueError:
            return None
    return None


def normalize_blank(text: str) -> str:
    """Trim, collapse inner whitespace and case-fold a blank answer."""
    return _WHITESPACE.sub(" ", text.strip()).casefold()


def _accepted_set(slot: Any) -> set[str]:
    """Accepted normalized answers for one fill_blank slot."""
    if isinstance(slot, str):
        return {normalize_blank(slot)}
    if isinstance(slot, (int, float)) and not isinstance(slot, bool):
        return {normalize_blank(str(slot))}
    if isinstance(slot, (list, tuple)) and slot:
        accepted: set[str] = set()
        for synonym in slot:
            if not isinstance(synonym, (str, int, float)) or isinstance(synonym, bool):
                raise AnswerValidationError(f"invalid synonym {synonym!r}")
            accepted.add(normalize_blank(str(synonym)))
        return accepted
    raise AnswerValidationError(f"invalid blank slot {slot!r}")


def _normalize_index_key(value: Any) -> str:
    """Normalize a matching index to its canonical string form."""
    if isinstance(value, bool):
        raise AnswerValidationError(f"invalid matching index {value!r}")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return str(int(value.strip()))
    raise AnswerValidationError(f"invalid matching index {value!r}")


def _normalize_matching(value: Any) -> dict[str, str]:
    """Normalize a matching answer to {left: right} with string indices.

    A list is read as right indices by left position; -1 marks an
    unmatched left item and is dropped.
    """
    if isinstance(value, dict):
        return {_normalize_index_key(k): _normalize_index_key(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        pairs: dict[str, str] = {}
        for left, right in enumerate(value):
            if _normalize_index_key(right) == "-1":
                continue
            pairs[str(left)] = _normalize_index_key(right)
        return pairs
    raise AnswerValidationError(f"invalid matching answer {value!r}")


# =============================================================================
# TYPE EVALUATORS
# =============================================================================


def _evaluate_choice(exercise: Exercise, raw_answer: Any) -> bool:
    correct_int = _normalize_choice_index(exercise.correct_answer)
    if correct_int is None:
        raise AnswerValidationError("choice answer key is not an index")

    student_int = _normalize_choice_index(raw_answer)
    if student_int is None:
        student_int = no_selection_for(correct_int)

    return student_int == correct_int


def _evaluate_fill_blank(exercise: Exercise, raw_answer: Any) -> bool:
    key = exercise.correct_answer
    if not isinstance(key, (list, tuple)) or not key:
        raise AnswerValidationError("fill_blank answer key must be a non-empty list")
    accepted = [_accepted_set(slot) for slot in key]

    if isinstance(raw_answer, str) and len(accepted) == 1:
        raw_answer = [raw_answer]
    if not isinstance(raw_answer, (list, tuple)):
        return False
    if len(raw_answer) != len(accepted):
        return False

    for given, slot in zip(raw_answer, accepted):
        if given is None or isinstance(given, bool):
            return False
        if normalize_blank(str(given)) not in slot:
            return False
    return True


def _evaluate_matching(exercise: Exercise, raw_answer: Any) -> bool:
    key = exercise.correct_answer
    if not isinstance(key, (dict, list, tuple)) or not key:
        raise AnswerValidationError("matching answer key must be a non-empty mapping")
    expected = _normalize_matching(key)
    if not expected:
        raise AnswerValidationError("matching answer key has no pairs")

    try:
        given = _normalize_matching(raw_answer)
    except AnswerValidationError:
        return False

    return given == expected


_EVALUATORS = {
    "choice": _evaluate_choice,
    "fill_blank": _evaluate_fill_blank,
    "matching": _evaluate_matching,
}


# =============================================================================
# MAIN FUNCTION
# =============================================================================


def evaluate(exercise: Exercise, raw_answer: Any) -> Evaluation:
    """Evaluate a raw answer against an exercise.

    Never raises. A broken answer key or an unknown exercise type yields
    an incorrect evaluation with a warning and a data-integrity log entry.

    Args:
        exercise: Exercise from the catalog
        raw_answer: Answer as submitted by the learner

    Returns:
        Evaluation with outcome correct, incorrect or ungraded
    """
    if exercise.type == "application":
        return Evaluation(exercise_id=exercise.exercise_id, outcome="ungraded")

    evaluator = _EVALUATORS.get(exercise.type)
    if evaluator is None:
        warning = f"unsupported exercise type: {exercise.type}"
        logger.warning(
            "exercise_data_integrity",
            exercise_id=exercise.exercise_id,
            exercise_type=exercise.type,
            error=warning,
        )
        return Evaluation(exercise.exercise_id, "incorrect", warning)

    try:
        is_correct = evaluator(exercise, raw_answer)
    except AnswerValidationError as e:
        logger.warning(
            "exercise_data_integrity",
            exercise_id=exercise.exercise_id,
            exercise_type=exercise.type,
            error=str(e),
        )
        return Evaluation(exercise.exercise_id, "incorrect", str(e))
    except Exception as e:  # noqa: BLE001 - evaluation must never propagate
        logger.error(
            "answer_evaluation_failed",
            exercise_id=exercise.exercise_id,
            exercise_type=exercise.type,
            error=str(e),
        )
        return Evaluation(exercise.exercise_id, "incorrect", str(e))

    return Evaluation(
        exercise_id=exercise.exercise_id,
        outcome="correct" if is_correct else "incorrect",
    )
