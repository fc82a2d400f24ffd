"""Progress aggregation module.

Responsibilities:
- Persist durable answer outcomes to the answer log
- Fold each durable record into the (student, unit) progress row:
  counters, completed exercises, completion rate, mastery, stars,
  completion flag
- Track study/practice visits

Every write happens in one BEGIN IMMEDIATE transaction, so concurrent
submissions for the same (student, unit) serialize instead of losing
counter increments. completed_exercises is recomputed from the log on
each write, which keeps it idempotent under resubmission.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Literal

import structlog

from progression.config.app_config import load_app_config
from progression.core.errors import NotFoundError
from progression.core.models import (
    AnswerRecord,
    Exercise,
    SessionContext,
    Unit,
    UnitProgress,
    utc_now,
)
from progression.core.points import STREAK_WINDOW, calculate_points
from progression.core.policy import (
    UngradedPolicy,
    is_completed,
    mastery_level,
    stars_for,
)
from progression.db.answer_records import (
    append_answer_record,
    count_completed_exercises,
    count_recent_correct,
)
from progression.db.catalog_repository import get_student, get_unit
from progression.db.database import transaction
from progression.db.progress_repository import get_progress, save_progress

logger = structlog.get_logger(__name__)

VisitKind = Literal["study", "practice"]


@dataclass(frozen=True)
class RecordedAnswer:
    """A stored record and the progress row it produced."""

    record: AnswerRecord
    progress: UnitProgress


# =============================================================================
# PURE FOLD
# =============================================================================


def new_progress(student_id: str, unit: Unit) -> UnitProgress:
    """Empty progress row; total_exercises is fixed from the catalog here."""
    return UnitProgress(
        student_id=student_id,
        unit_id=unit.unit_id,
        total_exercises=unit.total_exercises,
    )


def fold_record(
    progress: UnitProgress,
    record: AnswerRecord,
    completed_exercises: int,
    ungraded_policy: UngradedPolicy = UngradedPolicy.COUNT_AS_COMPLETE,
) -> UnitProgress:
    """Apply one durable record to a progress row.

    Args:
        progress: Current progress row (not mutated)
        record: The durable record just appended
        completed_exercises: Distinct correct exercises after the append
        ungraded_policy: How ungraded answers affect the counters

    Returns:
        New UnitProgress
    """
    updated = replace(progress)
    updated.total_answer_count += 1

    counts_as_graded = record.graded or ungraded_policy == UngradedPolicy.COUNT_AS_COMPLETE
    if counts_as_graded:
        if record.is_correct:
            updated.correct_count += 1
        else:
            updated.incorrect_count += 1

    if record.response_time:
        updated.total_time_spent += record.response_time
    updated.average_response_time = round(
        updated.total_time_spent / updated.total_answer_count, 2
    )

    total = updated.total_exercises
    updated.completed_exercises = min(completed_exercises, total) if total > 0 else 0
    updated.completion_rate = (
        updated.completed_exercises / total if total > 0 else 0.0
    )

    updated.mastery_level = mastery_level(updated.completion_rate, updated.accuracy)
    updated.stars = stars_for(updated.completion_rate)

    if is_completed(updated.completion_rate) and not updated.completed:
        updated.completed = True
        updated.completed_at = record.created_at or utc_now()
    if updated.completed:
        updated.unlock_next = True

    updated.updated_at = utc_now()
    return updated


# =============================================================================
# AGGREGATOR
# =============================================================================


class ProgressAggregator:
    """Writes durable answers and keeps UnitProgress in step with the log."""

    def __init__(self, ungraded_policy: UngradedPolicy | None = None):
        if ungraded_policy is None:
            ungraded_policy = load_app_config().policy.ungraded_policy
        self.ungraded_policy = ungraded_policy

    def record_answer(
        self,
        context: SessionContext,
        exercise: Exercise,
        unit_id: str,
        is_correct: bool,
        graded: bool = True,
        user_answer: Any = None,
        response_time: int | None = None,
        attempt_number: int = 1,
    ) -> RecordedAnswer:
        """Append a durable record and fold it into the unit's progress.

        Args:
            context: Session the answer belongs to
            exercise: Answered exercise
            unit_id: Unit the answer is credited to
            is_correct: Final outcome from the attempt tracker
            graded: False for answers awaiting manual review
            user_answer: Raw answer (None for skips)
            response_time: Seconds spent answering
            attempt_number: Submissions made before this outcome

        Returns:
            RecordedAnswer with the stored record and updated progress

        Raises:
            NotFoundError: Unknown student or unit, or an exercise outside
                the unit
        """
        if not graded:
            # Open question: ungraded answers pass only under COUNT_AS_COMPLETE
            is_correct = self.ungraded_policy == UngradedPolicy.COUNT_AS_COMPLETE
            if is_correct:
                logger.warning(
                    "ungraded_counted_as_complete",
                    student_id=context.student_id,
                    exercise_id=exercise.exercise_id,
                    unit_id=unit_id,
                )

        with transaction() as conn:
            if get_student(context.student_id, conn) is None:
                raise NotFoundError("Student", context.student_id)
            unit = get_unit(unit_id, conn)
            if unit is None:
                raise NotFoundError("Unit", unit_id)
            if exercise.unit_id != unit_id:
                raise NotFoundError("Exercise", f"{exercise.exercise_id}@{unit_id}")

            points = calculate_points(
                is_correct,
                context.practice_mode,
                exercise.difficulty,
                recent_correct=count_recent_correct(conn, context.student_id, STREAK_WINDOW),
            )

            record = append_answer_record(
                conn,
                AnswerRecord(
                    student_id=context.student_id,
                    exercise_id=exercise.exercise_id,
                    unit_id=unit_id,
                    is_correct=is_correct,
                    graded=graded,
                    user_answer=user_answer,
                    response_time=response_time,
                    session_id=context.session_id,
                    practice_mode=context.practice_mode,
                    attempt_number=attempt_number,
                    points_earned=points,
                ),
            )

            progress = get_progress(context.student_id, unit_id, conn) or new_progress(
                context.student_id, unit
            )
            completed = count_completed_exercises(conn, context.student_id, unit_id)
            progress = fold_record(progress, record, completed, self.ungraded_policy)
            save_progress(conn, progress)

        logger.info(
            "answer_recorded",
            student_id=context.student_id,
            session_id=context.session_id,
            exercise_id=exercise.exercise_id,
            unit_id=unit_id,
            is_correct=is_correct,
            graded=graded,
            completed_exercises=progress.completed_exercises,
            completion_rate=progress.completion_rate,
            points_earned=points,
        )
        return RecordedAnswer(record=record, progress=progress)

    def get_unit_progress(self, student_id: str, unit_id: str) -> UnitProgress:
        """Persisted progress, or an empty row if the unit was never touched.

        Raises:
            NotFoundError: Unknown unit
        """
        unit = get_unit(unit_id)
        if unit is None:
            raise NotFoundError("Unit", unit_id)
        return get_progress(student_id, unit_id) or new_progress(student_id, unit)

    def record_visit(
        self,
        student_id: str,
        unit_id: str,
        kind: VisitKind,
        time_spent: int = 0,
    ) -> UnitProgress:
        """Count a study or practice visit and create the row on first contact.

        Raises:
            NotFoundError: Unknown student or unit
        """
        with transaction() as conn:
            if get_student(student_id, conn) is None:
                raise NotFoundError("Student", student_id)
            unit = get_unit(unit_id, conn)
            if unit is None:
                raise NotFoundError("Unit", unit_id)

            progress = get_progress(student_id, unit_id, conn) or new_progress(student_id, unit)
            if kind == "study":
                progress.study_count += 1
            else:
                progress.practice_count += 1
            progress.total_time_spent += max(0, time_spent)
            progress.updated_at = utc_now()
            save_progress(conn, progress)

        logger.debug("unit_visit_recorded", student_id=student_id, unit_id=unit_id, kind=kind)
        return progress
