"""Practice session orchestration.

Runs one submission through the pipeline:

    evaluate -> attempt transition -> (durable) record + progress fold

A PracticeSession owns the attempt states of one practice session and
carries the SessionContext explicitly; it has no dependency on the web
layer, so the CLI and the API share it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from progression.core import attempt_tracker
from progression.core.answer_evaluator import Evaluation, evaluate
from progression.core.attempt_tracker import AttemptState, AttemptTransition
from progression.core.errors import NotFoundError
from progression.core.models import AnswerRecord, Exercise, SessionContext, UnitProgress
from progression.core.progress_aggregator import ProgressAggregator
from progression.db.catalog_repository import get_exercise

logger = structlog.get_logger(__name__)


@dataclass
class SubmissionOutcome:
    """Everything a front-end needs after one submit or skip."""

    exercise: Exercise
    unit_id: str
    transition: AttemptTransition
    progress: UnitProgress
    evaluation: Evaluation | None = None
    record: AnswerRecord | None = None

    @property
    def is_correct(self) -> bool:
        """The stored outcome once a record exists, else the attempt's."""
        if self.record is not None:
            return self.record.is_correct
        return self.transition.is_correct

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        state = self.transition.state
        result: dict[str, Any] = {
            "exercise_id": self.exercise.exercise_id,
            "unit_id": self.unit_id,
            "is_correct": self.is_correct,
            "outcome": state.last_outcome,
            "phase": state.phase,
            "attempt_count": state.attempt_count,
            "recorded": self.record is not None,
            "retry_allowed": self.transition.retry_allowed,
            "mastery_level": self.progress.mastery_level,
            "correct_count": self.progress.correct_count,
            "incorrect_count": self.progress.incorrect_count,
            "total_answers": self.progress.total_answer_count,
            "completed_exercises": self.progress.completed_exercises,
            "completion_rate": self.progress.completion_rate,
            "stars": self.progress.stars,
            "points_earned": self.record.points_earned if self.record else 0,
        }
        if self.transition.reveal_explanation:
            result["explanation"] = self.exercise.explanation
            result["correct_answer"] = self.exercise.correct_answer
        if self.transition.show_help:
            result["help_knowledge_point_ids"] = list(self.exercise.knowledge_point_ids)
        if self.evaluation is not None and self.evaluation.warning:
            result["warning"] = self.evaluation.warning
        return result


@dataclass
class PracticeSession:
    """Attempt states and context for one practice session."""

    context: SessionContext
    aggregator: ProgressAggregator = field(default_factory=ProgressAggregator)
    attempts: dict[str, AttemptState] = field(default_factory=dict)

    @property
    def session_id(self) -> str:
        return self.context.session_id

    @property
    def student_id(self) -> str:
        return self.context.student_id

    def attempt_for(self, exercise_id: str) -> AttemptState:
        """Current attempt state for an exercise (fresh if never touched)."""
        return self.attempts.get(exercise_id) or attempt_tracker.new_attempt(
            self.session_id, exercise_id
        )

    def _load_exercise(self, exercise_id: str, unit_id: str) -> Exercise:
        exercise = get_exercise(exercise_id)
        if exercise is None:
            raise NotFoundError("Exercise", exercise_id)
        if exercise.unit_id != unit_id:
            raise NotFoundError("Exercise", f"{exercise_id}@{unit_id}")
        return exercise

    def _finish(
        self,
        exercise: Exercise,
        unit_id: str,
        transition: AttemptTransition,
        user_answer: Any,
        response_time: int | None,
        evaluation: Evaluation | None,
    ) -> SubmissionOutcome:
        record = None
        if transition.record:
            recorded = self.aggregator.record_answer(
                self.context,
                exercise,
                unit_id,
                is_correct=transition.is_correct,
                graded=transition.graded,
                user_answer=user_answer,
                response_time=response_time,
                attempt_number=max(1, transition.state.attempt_count),
            )
            record = recorded.record
            progress = recorded.progress
        else:
            progress = self.aggregator.get_unit_progress(self.student_id, unit_id)

        # State advances only after the durable write succeeded
        self.attempts[exercise.exercise_id] = transition.state
        return SubmissionOutcome(
            exercise=exercise,
            unit_id=unit_id,
            transition=transition,
            progress=progress,
            evaluation=evaluation,
            record=record,
        )

    def submit(
        self,
        exercise_id: str,
        unit_id: str,
        answer: Any,
        response_time: int | None = None,
    ) -> SubmissionOutcome:
        """Evaluate an answer and apply the one-retry attempt policy.

        Raises:
            NotFoundError: Unknown exercise or unit
            AttemptAlreadyResolvedError: Exercise already resolved here
        """
        exercise = self._load_exercise(exercise_id, unit_id)
        evaluation = evaluate(exercise, answer)
        transition = attempt_tracker.submit(self.attempt_for(exercise_id), evaluation)

        logger.debug(
            "answer_submitted",
            session_id=self.session_id,
            exercise_id=exercise_id,
            outcome=evaluation.outcome,
            phase=transition.state.phase,
        )
        return self._finish(exercise, unit_id, transition, answer, response_time, evaluation)

    def skip(
        self,
        exercise_id: str,
        unit_id: str,
        response_time: int | None = None,
    ) -> SubmissionOutcome:
        """Resolve an exercise as incorrect with a null answer.

        Raises:
            NotFoundError: Unknown exercise or unit
            AttemptAlreadyResolvedError: Exercise already resolved here
        """
        exercise = self._load_exercise(exercise_id, unit_id)
        transition = attempt_tracker.skip(self.attempt_for(exercise_id))
        return self._finish(exercise, unit_id, transition, None, response_time, None)

    def reset(self, exercise_id: str) -> None:
        """Start a new render lifecycle for an exercise."""
        self.attempts.pop(exercise_id, None)
