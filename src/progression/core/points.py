"""Point values emitted with each durable answer.

Points are reported only; redemption lives outside this package.
"""

from __future__ import annotations

import math

BASE_POINTS = 1
STREAK_WINDOW = 5
STREAK_MIN_CORRECT = 3
STREAK_BONUS = 1

MODE_MULTIPLIERS = {
    "review": 0.8,
    "wrong_redo": 1.2,
}

DIFFICULTY_MULTIPLIERS = {
    "easy": 0.8,
    "medium": 1.0,
    "hard": 1.5,
}


def difficulty_multiplier(practice_mode: str, difficulty: str) -> float:
    """Combined multiplier for a practice mode and exercise difficulty."""
    return MODE_MULTIPLIERS.get(practice_mode, 1.0) * DIFFICULTY_MULTIPLIERS.get(difficulty, 1.0)


def calculate_points(
    is_correct: bool,
    practice_mode: str,
    difficulty: str,
    recent_correct: int = 0,
) -> int:
    """Points earned by one durable answer.

    Args:
        is_correct: Whether the answer was correct
        practice_mode: Practice mode of the session
        difficulty: Exercise difficulty
        recent_correct: Correct answers among the student's last
            STREAK_WINDOW durable records

    Returns:
        Non-negative integer point value
    """
    if not is_correct:
        return 0

    points = math.floor(BASE_POINTS * difficulty_multiplier(practice_mode, difficulty))
    if recent_correct >= STREAK_MIN_CORRECT:
        points += STREAK_BONUS
    return points
