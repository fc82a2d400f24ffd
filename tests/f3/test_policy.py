"""Tests for progression thresholds and points."""

import pytest

from progression.core.models import PRACTICE_MODES
from progression.core.points import MODE_MULTIPLIERS, calculate_points, difficulty_multiplier
from progression.core.policy import (
    PlacementPolicy,
    is_completed,
    mastery_level,
    placement_passed,
    stars_for,
)


class TestStars:
    """Tests for stars_for."""

    @pytest.mark.parametrize(
        "rate,expected",
        [(0.0, 0), (0.1, 1), (0.59, 1), (0.6, 2), (0.79, 2), (0.8, 3), (1.0, 3)],
    )
    def test_thresholds(self, rate, expected):
        """Stars follow the 0.6 / 0.8 cutoffs."""
        assert stars_for(rate) == expected

    def test_completion_threshold(self):
        """Completion starts at 0.8."""
        assert is_completed(0.8) is True
        assert is_completed(0.79) is False


class TestMastery:
    """Tests for mastery_level."""

    def test_bounded(self):
        """Mastery never exceeds 1."""
        assert mastery_level(1.0, 1.0) == 1.0
        assert mastery_level(5.0, 5.0) == 1.0
        assert mastery_level(0.0, 0.0) == 0.0

    def test_increasing_in_completion(self):
        """Holding accuracy fixed, more completion never lowers mastery."""
        levels = [mastery_level(c / 10, 0.5) for c in range(11)]
        assert levels == sorted(levels)

    def test_errors_decay_mastery(self):
        """Lower accuracy gives lower mastery at the same completion."""
        assert mastery_level(0.5, 0.4) < mastery_level(0.5, 0.9)


class TestPlacementPassed:
    """Tests for placement_passed."""

    def test_any_correct(self):
        """One correct answer passes under ANY_CORRECT."""
        assert placement_passed(1, 5, PlacementPolicy.ANY_CORRECT) is True
        assert placement_passed(0, 5, PlacementPolicy.ANY_CORRECT) is False

    def test_min_rate(self):
        """MIN_RATE requires the pass rate."""
        assert placement_passed(2, 5, PlacementPolicy.MIN_RATE, 0.6) is False
        assert placement_passed(3, 5, PlacementPolicy.MIN_RATE, 0.6) is True

    def test_no_questions_never_passes(self):
        """An empty test unlocks nothing."""
        assert placement_passed(0, 0, PlacementPolicy.ANY_CORRECT) is False


class TestPoints:
    """Tests for calculate_points."""

    def test_incorrect_earns_nothing(self):
        assert calculate_points(False, "normal", "hard", recent_correct=5) == 0

    def test_base_points(self):
        """Medium difficulty in normal mode earns the base point."""
        assert calculate_points(True, "normal", "medium") == 1

    def test_multipliers_are_floored(self):
        """Review of an easy exercise rounds down to zero."""
        assert difficulty_multiplier("review", "easy") == pytest.approx(0.64)
        assert calculate_points(True, "review", "easy") == 0

    def test_streak_bonus(self):
        """Three recent correct answers add the streak bonus."""
        assert calculate_points(True, "normal", "medium", recent_correct=2) == 1
        assert calculate_points(True, "normal", "medium", recent_correct=3) == 2

    def test_mode_multipliers_match_session_modes(self):
        """Every multiplier belongs to a mode a practice session can use."""
        assert set(MODE_MULTIPLIERS) <= set(PRACTICE_MODES) - {"unlock_test"}
