"""Domain records for the progression engine.

Exercise and Unit come from the read-only catalog. AnswerRecord is the
append-only answer log. UnitProgress is the per-(student, unit) rollup
maintained by the progress aggregator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

ExerciseType = Literal["choice", "fill_blank", "matching", "application"]
UnitType = Literal["normal", "exercise"]
PracticeMode = Literal["normal", "review", "wrong_redo", "test", "unlock_test"]
Difficulty = Literal["easy", "medium", "hard"]

EXERCISE_TYPES: tuple[str, ...] = ("choice", "fill_blank", "matching", "application")
PRACTICE_MODES: tuple[str, ...] = ("normal", "review", "wrong_redo", "test", "unlock_test")


def utc_now() -> str:
    """Current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# CATALOG
# =============================================================================


@dataclass(frozen=True)
class Exercise:
    """A single authored exercise."""

    exercise_id: str
    unit_id: str
    type: str
    correct_answer: Any
    question: str = ""
    options: Any = None
    difficulty: str = "medium"
    explanation: str = ""
    knowledge_point_ids: tuple[str, ...] = ()
    position: int = 0

    def to_public_dict(self) -> dict[str, Any]:
        """Serialize without the answer key (safe to send to learners)."""
        return {
            "exercise_id": self.exercise_id,
            "unit_id": self.unit_id,
            "type": self.type,
            "question": self.question,
            "options": self.options,
            "difficulty": self.difficulty,
            "knowledge_point_ids": list(self.knowledge_point_ids),
        }


@dataclass(frozen=True)
class Unit:
    """A learning unit inside a subject track."""

    unit_id: str
    subject_code: str
    title: str = ""
    level: int = 1
    order: int = 0
    unit_type: str = "normal"
    total_exercises: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "unit_id": self.unit_id,
            "subject_code": self.subject_code,
            "title": self.title,
            "level": self.level,
            "order": self.order,
            "unit_type": self.unit_type,
            "total_exercises": self.total_exercises,
        }


# =============================================================================
# SESSION CONTEXT
# =============================================================================


@dataclass(frozen=True)
class SessionContext:
    """Correlation data threaded through one practice or placement session."""

    session_id: str
    student_id: str
    practice_mode: str = "normal"


# =============================================================================
# ANSWER LOG
# =============================================================================


@dataclass(frozen=True)
class AnswerRecord:
    """A durable, immutable answer outcome."""

    student_id: str
    exercise_id: str
    unit_id: str
    is_correct: bool
    session_id: str
    graded: bool = True
    user_answer: Any = None
    response_time: int | None = None
    practice_mode: str = "normal"
    attempt_number: int = 1
    points_earned: int = 0
    created_at: str = ""
    record_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "record_id": self.record_id,
            "student_id": self.student_id,
            "exercise_id": self.exercise_id,
            "unit_id": self.unit_id,
            "is_correct": self.is_correct,
            "graded": self.graded,
            "user_answer": self.user_answer,
            "response_time": self.response_time,
            "session_id": self.session_id,
            "practice_mode": self.practice_mode,
            "attempt_number": self.attempt_number,
            "points_earned": self.points_earned,
            "created_at": self.created_at,
        }


# =============================================================================
# PROGRESS
# =============================================================================


@dataclass
class UnitProgress:
    """Per-(student, unit) completion and mastery metrics."""

    student_id: str
    unit_id: str
    total_exercises: int = 0
    completed_exercises: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    total_answer_count: int = 0
    completion_rate: float = 0.0
    mastery_level: float = 0.0
    stars: int = 0
    completed: bool = False
    unlock_next: bool = False
    unlocked: bool = False
    total_time_spent: int = 0
    average_response_time: float = 0.0
    study_count: int = 0
    practice_count: int = 0
    completed_at: str | None = None
    updated_at: str = field(default_factory=utc_now)

    @property
    def accuracy(self) -> float:
        """Share of graded answers that were correct."""
        graded = self.correct_count + self.incorrect_count
        return self.correct_count / graded if graded > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "student_id": self.student_id,
            "unit_id": self.unit_id,
            "total_exercises": self.total_exercises,
            "completed_exercises": self.completed_exercises,
            "correct_count": self.correct_count,
            "incorrect_count": self.incorrect_count,
            "total_answer_count": self.total_answer_count,
            "completion_rate": self.completion_rate,
            "mastery_level": self.mastery_level,
            "stars": self.stars,
            "completed": self.completed,
            "unlock_next": self.unlock_next,
            "unlocked": self.unlocked,
            "total_time_spent": self.total_time_spent,
            "average_response_time": self.average_response_time,
            "study_count": self.study_count,
            "practice_count": self.practice_count,
            "completed_at": self.completed_at,
            "updated_at": self.updated_at,
        }
