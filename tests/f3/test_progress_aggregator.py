"""Tests for progress aggregation."""

import threading

import pytest

from progression.core.errors import NotFoundError
from progression.core.models import AnswerRecord, SessionContext, UnitProgress
from progression.core.policy import UngradedPolicy
from progression.core.progress_aggregator import ProgressAggregator, fold_record
from progression.db.catalog_repository import get_exercise
from progression.db.progress_repository import get_progress


def _record(is_correct: bool, graded: bool = True, response_time=None) -> AnswerRecord:
    return AnswerRecord(
        student_id="stu01",
        exercise_id="ex01",
        unit_id="unit01",
        is_correct=is_correct,
        graded=graded,
        session_id="sess01",
        response_time=response_time,
        created_at="2024-01-01T00:00:00+00:00",
    )


@pytest.fixture
def aggregator(catalog_db):
    return ProgressAggregator(UngradedPolicy.COUNT_AS_COMPLETE)


@pytest.fixture
def context():
    return SessionContext(session_id="sess01", student_id="stu01")


class TestFoldRecord:
    """Tests for the pure fold."""

    def test_counts_and_rate(self):
        """One correct answer out of five exercises."""
        progress = UnitProgress(student_id="stu01", unit_id="unit01", total_exercises=5)
        updated = fold_record(progress, _record(True, response_time=10), completed_exercises=1)

        assert updated.total_answer_count == 1
        assert updated.correct_count == 1
        assert updated.completion_rate == pytest.approx(0.2)
        assert updated.stars == 1
        assert updated.completed is False
        assert updated.average_response_time == 10
        # Input is left unchanged
        assert progress.total_answer_count == 0

    def test_completion_sets_unlock_next(self):
        """Reaching the completion threshold completes the unit."""
        progress = UnitProgress(student_id="stu01", unit_id="unit01", total_exercises=5)
        updated = fold_record(progress, _record(True), completed_exercises=4)

        assert updated.completed is True
        assert updated.unlock_next is True
        assert updated.completed_at == "2024-01-01T00:00:00+00:00"
        assert updated.stars == 3

    def test_completed_is_sticky(self):
        """A later wrong answer never un-completes a unit."""
        progress = UnitProgress(
            student_id="stu01", unit_id="unit01", total_exercises=5, completed=True
        )
        updated = fold_record(progress, _record(False), completed_exercises=3)
        assert updated.completed is True

    def test_completed_exercises_capped(self):
        """completed_exercises never exceeds total_exercises."""
        progress = UnitProgress(student_id="stu01", unit_id="unit01", total_exercises=2)
        updated = fold_record(progress, _record(True), completed_exercises=7)
        assert updated.completed_exercises == 2
        assert updated.completion_rate == 1.0

    def test_empty_unit_rate_zero(self):
        """A unit with no exercises keeps a zero rate."""
        progress = UnitProgress(student_id="stu01", unit_id="unit01", total_exercises=0)
        updated = fold_record(progress, _record(True), completed_exercises=0)
        assert updated.completion_rate == 0.0
        assert updated.stars == 0

    def test_ungraded_held_not_counted(self):
        """Held ungraded answers touch only the total answer count."""
        progress = UnitProgress(student_id="stu01", unit_id="unit01", total_exercises=5)
        updated = fold_record(
            progress, _record(False, graded=False), 0, UngradedPolicy.HOLD_FOR_REVIEW
        )
        assert updated.total_answer_count == 1
        assert updated.correct_count == 0
        assert updated.incorrect_count == 0


class TestRecordAnswer:
    """Tests for ProgressAggregator.record_answer."""

    def test_creates_progress_row(self, aggregator, context):
        """First answer creates the row with catalog totals."""
        exercise = get_exercise("u1-choice")
        result = aggregator.record_answer(context, exercise, "math-u1", is_correct=True)

        stored = get_progress("stu01", "math-u1")
        assert stored is not None
        assert stored.total_exercises == 5
        assert stored.correct_count == 1
        assert result.record.record_id is not None
        assert result.record.points_earned == 1

    def test_duplicate_correct_answers_count_once(self, aggregator, context):
        """completed_exercises counts distinct exercises."""
        exercise = get_exercise("u1-choice")
        aggregator.record_answer(context, exercise, "math-u1", is_correct=True)
        result = aggregator.record_answer(context, exercise, "math-u1", is_correct=True)

        assert result.progress.completed_exercises == 1
        assert result.progress.correct_count == 2
        assert result.progress.total_answer_count == 2

    def test_completing_unit(self, aggregator, context):
        """Four of five exercises correct completes math-u1."""
        for exercise_id in ("u1-choice", "u1-blank", "u1-match", "u1-choice2"):
            result = aggregator.record_answer(
                context, get_exercise(exercise_id), "math-u1", is_correct=True
            )
        assert result.progress.completion_rate == pytest.approx(0.8)
        assert result.progress.completed is True
        assert result.progress.stars == 3

    def test_streak_bonus_applied(self, aggregator, context):
        """The fourth consecutive correct answer earns a streak bonus."""
        results = [
            aggregator.record_answer(context, get_exercise(e), "math-u1", is_correct=True)
            for e in ("u1-choice", "u1-blank", "u1-match", "u1-choice2")
        ]
        assert [r.record.points_earned for r in results[:3]] == [1, 1, 1]
        # hard difficulty (1.5 floored to 1) plus the bonus
        assert results[3].record.points_earned == 2

    def test_unknown_student(self, aggregator):
        """Unknown student is NotFound and writes nothing."""
        ctx = SessionContext(session_id="s", student_id="ghost")
        with pytest.raises(NotFoundError):
            aggregator.record_answer(ctx, get_exercise("u1-choice"), "math-u1", True)

    def test_unit_mismatch(self, aggregator, context):
        """Exercise outside the unit is rejected."""
        with pytest.raises(NotFoundError):
            aggregator.record_answer(context, get_exercise("u2-e1"), "math-u1", True)
        assert get_progress("stu01", "math-u1") is None

    def test_concurrent_submissions_do_not_lose_updates(self, aggregator):
        """Parallel writers for the same unit serialize their increments."""
        exercise = get_exercise("u2-e1")
        errors = []

        def worker(n: int) -> None:
            try:
                ctx = SessionContext(session_id=f"sess-{n}", student_id="stu01")
                aggregator.record_answer(ctx, exercise, "math-u2", is_correct=n % 2 == 0)
            except Exception as e:  # pragma: no cover
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        stored = get_progress("stu01", "math-u2")
        assert stored.total_answer_count == 8
        assert stored.correct_count == 4
        assert stored.incorrect_count == 4


class TestProgressReadsAndVisits:
    """Tests for get_unit_progress and record_visit."""

    def test_untouched_unit_is_empty(self, aggregator):
        """No row yet returns zeros."""
        progress = aggregator.get_unit_progress("stu01", "math-u3")
        assert progress.total_exercises == 1
        assert progress.total_answer_count == 0
        assert get_progress("stu01", "math-u3") is None

    def test_unknown_unit(self, aggregator):
        with pytest.raises(NotFoundError):
            aggregator.get_unit_progress("stu01", "nope")

    def test_visits(self, aggregator):
        """Study and practice visits are counted separately."""
        aggregator.record_visit("stu01", "math-u1", "study", time_spent=30)
        progress = aggregator.record_visit("stu01", "math-u1", "practice")

        assert progress.study_count == 1
        assert progress.practice_count == 1
        assert progress.total_time_spent == 30
