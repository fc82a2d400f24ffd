"""Tests for the sequential unlock gate."""

import pytest

from progression.core.errors import NotFoundError
from progression.core.models import SessionContext, Unit, UnitProgress
from progression.core.placement_test import batch_unlock
from progression.core.progress_aggregator import ProgressAggregator
from progression.core.unlock_gate import (
    access_reason,
    check_access,
    evaluate_track,
    is_accessible,
    order_track,
    track_access,
)
from progression.db.catalog_repository import get_exercise


def _units(*specs) -> list[Unit]:
    return [
        Unit(unit_id=uid, subject_code="s", level=level, order=order, unit_type=unit_type)
        for uid, level, order, unit_type in specs
    ]


TRACK = _units(("A", 1, 1, "normal"), ("B", 1, 2, "normal"), ("C", 2, 1, "normal"))


class TestOrdering:
    """Tests for order_track."""

    def test_sorted_by_level_then_order(self):
        """Level wins over order."""
        units = _units(("late", 2, 0, "normal"), ("early", 1, 5, "normal"))
        assert [u.unit_id for u in order_track(units)] == ["early", "late"]


class TestAccessRule:
    """Tests for the pure access predicate."""

    def test_first_unit_always_accessible(self):
        assert access_reason(TRACK, {}, 0) == "first_unit"

    def test_locked_without_progress(self):
        """No progress on the predecessor locks the unit."""
        assert is_accessible(TRACK, {}, 1) is False

    def test_completed_predecessor_opens(self):
        progress = {"A": UnitProgress(student_id="s1", unit_id="A", completed=True)}
        assert access_reason(TRACK, progress, 1) == "predecessor_completed"
        # Only the direct predecessor counts
        assert is_accessible(TRACK, progress, 2) is False

    def test_unlocked_unit_opens_itself(self):
        """A batch-unlocked unit is open without completing its predecessor."""
        progress = {"B": UnitProgress(student_id="s1", unit_id="B", unlocked=True)}
        assert access_reason(TRACK, progress, 1) == "unlocked"
        # Its successor still waits for B to be completed
        assert is_accessible(TRACK, progress, 2) is False

    def test_exercise_unit_never_blocks(self):
        """Checkpoint units do not gate their successor."""
        units = _units(("A", 1, 1, "normal"), ("X", 1, 2, "exercise"), ("C", 1, 3, "normal"))
        assert access_reason(units, {}, 2) == "predecessor_checkpoint"

    def test_exercise_unit_always_open(self):
        """A checkpoint unit is open even behind an incomplete unit."""
        units = _units(("A", 1, 1, "normal"), ("X", 1, 2, "exercise"))
        assert access_reason(units, {}, 1) == "checkpoint"
        assert is_accessible(units, {}, 1) is True

    def test_out_of_range(self):
        with pytest.raises(IndexError):
            access_reason(TRACK, {}, 3)

    def test_evaluate_track(self):
        decisions = evaluate_track(TRACK, {})
        assert [d.accessible for d in decisions] == [True, False, False]


class TestTrackAccess:
    """Tests for DB-backed track evaluation."""

    def test_fresh_student(self, catalog_db):
        """Only the first unit is open for a new student."""
        decisions = track_access("stu01", "math")
        assert [d.unit.unit_id for d in decisions] == ["math-u1", "math-u2", "math-u3", "math-u4"]
        assert [d.accessible for d in decisions] == [True, False, False, False]

    def test_completing_opens_next(self, catalog_db):
        """Completing math-u2 opens math-u3."""
        aggregator = ProgressAggregator()
        ctx = SessionContext(session_id="s", student_id="stu01")
        for exercise_id in ("u2-e1", "u2-e2"):
            aggregator.record_answer(ctx, get_exercise(exercise_id), "math-u2", True)

        assert check_access("stu01", "math", "math-u3").accessible is True
        assert check_access("stu01", "math", "math-u2").accessible is False

    def test_unknown_subject(self, catalog_db):
        with pytest.raises(NotFoundError):
            track_access("stu01", "history")

    def test_unit_not_in_track(self, catalog_db):
        with pytest.raises(NotFoundError):
            check_access("stu01", "math", "nope")

    def test_batch_unlocked_units_open_mid_track(self, catalog_db):
        """Unlocking math-u2 and math-u3 opens exactly those two."""
        batch_unlock("stu01", ["math-u2", "math-u3"])

        decisions = {d.unit.unit_id: d for d in track_access("stu01", "math")}
        assert decisions["math-u2"].reason == "unlocked"
        assert decisions["math-u3"].accessible is True
        assert decisions["math-u4"].accessible is False
