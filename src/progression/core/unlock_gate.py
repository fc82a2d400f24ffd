"""Unlock gate for unit tracks.

unit[i] is accessible iff:
- i == 0, or
- unit[i] itself was lifted by a placement batch unlock (unlocked), or
- unit[i] is an `exercise` (checkpoint) unit, which is always open, or
- the predecessor is completed, or
- the predecessor is an `exercise` unit, which never blocks

The predicate is pure. track_access() feeds it persisted UnitProgress for
one request and caches nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Mapping, Sequence

from progression.core.errors import NotFoundError
from progression.core.models import Unit, UnitProgress
from progression.db.catalog_repository import list_track_units
from progression.db.progress_repository import list_progress

AccessReason = Literal[
    "first_unit",
    "unlocked",
    "checkpoint",
    "predecessor_completed",
    "predecessor_checkpoint",
    "locked",
]


@dataclass(frozen=True)
class UnitAccess:
    """Access decision for one unit of a track."""

    unit: Unit
    index: int
    accessible: bool
    reason: AccessReason
    progress: UnitProgress | None = None

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            **self.unit.to_dict(),
            "index": self.index,
            "accessible": self.accessible,
            "reason": self.reason,
            "stars": self.progress.stars if self.progress else 0,
            "completed": self.progress.completed if self.progress else False,
            "unlocked": self.progress.unlocked if self.progress else False,
            "completion_rate": self.progress.completion_rate if self.progress else 0.0,
        }


def order_track(units: Sequence[Unit]) -> list[Unit]:
    """Sort units into track order: level, then order within the level."""
    return sorted(units, key=lambda u: (u.level, u.order, u.unit_id))


def access_reason(
    units: Sequence[Unit],
    progress_by_unit: Mapping[str, UnitProgress],
    index: int,
) -> AccessReason:
    """Why unit[index] is (or is not) accessible."""
    if index < 0 or index >= len(units):
        raise IndexError(f"unit index {index} out of range")
    if index == 0:
        return "first_unit"

    unit = units[index]
    own = progress_by_unit.get(unit.unit_id)
    if own is not None and own.unlocked:
        return "unlocked"
    if unit.unit_type == "exercise":
        return "checkpoint"

    predecessor = units[index - 1]
    progress = progress_by_unit.get(predecessor.unit_id)
    if progress is not None and progress.completed:
        return "predecessor_completed"
    if predecessor.unit_type == "exercise":
        return "predecessor_checkpoint"
    return "locked"


def is_accessible(
    units: Sequence[Unit],
    progress_by_unit: Mapping[str, UnitProgress],
    index: int,
) -> bool:
    """Whether unit[index] of an ordered track is accessible."""
    return access_reason(units, progress_by_unit, index) != "locked"


def evaluate_track(
    units: Sequence[Unit],
    progress_by_unit: Mapping[str, UnitProgress],
) -> list[UnitAccess]:
    """Access decisions for every unit of an ordered track."""
    decisions = []
    for index, unit in enumerate(units):
        reason = access_reason(units, progress_by_unit, index)
        decisions.append(
            UnitAccess(
                unit=unit,
                index=index,
                accessible=reason != "locked",
                reason=reason,
                progress=progress_by_unit.get(unit.unit_id),
            )
        )
    return decisions


def track_access(student_id: str, subject_code: str) -> list[UnitAccess]:
    """Evaluate a subject track for a student from persisted progress.

    Raises:
        NotFoundError: Subject has no units
    """
    units = order_track(list_track_units(subject_code))
    if not units:
        raise NotFoundError("Subject", subject_code)
    progress = list_progress(student_id, [u.unit_id for u in units])
    return evaluate_track(units, progress)


def check_access(student_id: str, subject_code: str, unit_id: str) -> UnitAccess:
    """Access decision for a single unit.

    Raises:
        NotFoundError: Unknown subject or unit not in the track
    """
    for decision in track_access(student_id, subject_code):
        if decision.unit.unit_id == unit_id:
            return decision
    raise NotFoundError("Unit", unit_id)
