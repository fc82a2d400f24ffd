"""Centralized progression thresholds.

Stars, completion and placement unlock rules are decided here and
nowhere else:

- stars and completion: 0.6 / 0.8 cutoffs on completion_rate
- placement unlock: "any correct answer" or "correct rate >= 0.6",
  selected with PlacementPolicy; any_correct is the default
"""

from __future__ import annotations

from enum import Enum

# Stars: completion_rate > 0 -> 1, >= 0.6 -> 2, >= 0.8 -> 3
TWO_STAR_THRESHOLD = 0.6
THREE_STAR_THRESHOLD = 0.8

# A unit counts as completed (and lifts the gate for its successor) here
COMPLETION_THRESHOLD = 0.8

# Placement test: minimum correct rate under PlacementPolicy.MIN_RATE
PLACEMENT_PASS_RATE = 0.6

# Mastery blend: completion weight + accuracy weight == 1
MASTERY_COMPLETION_WEIGHT = 0.6
MASTERY_ACCURACY_WEIGHT = 0.4


class PlacementPolicy(str, Enum):
    """How a placement test decides whether to unlock its range."""

    ANY_CORRECT = "any_correct"
    MIN_RATE = "min_rate"


class UngradedPolicy(str, Enum):
    """How `application` answers (no deterministic key) affect progress.

    COUNT_AS_COMPLETE is the default: the answer counts as correct and
    completes the exercise before any human review.
    HOLD_FOR_REVIEW records it but leaves correct/incorrect counters and
    completion untouched until it is graded.
    """

    COUNT_AS_COMPLETE = "count_as_complete"
    HOLD_FOR_REVIEW = "hold_for_review"


def stars_for(completion_rate: float) -> int:
    """Map a completion rate to a 0-3 star rating."""
    if completion_rate <= 0:
        return 0
    if completion_rate >= THREE_STAR_THRESHOLD:
        return 3
    if completion_rate >= TWO_STAR_THRESHOLD:
        return 2
    return 1


def is_completed(completion_rate: float) -> bool:
    """Whether a unit with this completion rate counts as completed."""
    return completion_rate >= COMPLETION_THRESHOLD


def mastery_level(completion_rate: float, accuracy: float) -> float:
    """Blend completion and historical accuracy into a [0, 1] score.

    Weakly increasing in completion_rate for a fixed accuracy; every
    incorrect answer lowers accuracy and so decays mastery linearly.
    """
    completion_rate = max(0.0, min(1.0, completion_rate))
    accuracy = max(0.0, min(1.0, accuracy))
    level = MASTERY_COMPLETION_WEIGHT * completion_rate + MASTERY_ACCURACY_WEIGHT * accuracy
    return min(1.0, round(level, 4))


def placement_passed(
    correct_count: int,
    question_count: int,
    policy: PlacementPolicy,
    pass_rate: float = PLACEMENT_PASS_RATE,
) -> bool:
    """Decide whether a placement score unlocks the tested range."""
    if question_count <= 0:
        return False
    if policy == PlacementPolicy.ANY_CORRECT:
        return correct_count > 0
    return correct_count / question_count >= pass_rate
