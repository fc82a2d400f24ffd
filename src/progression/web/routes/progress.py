"""Unit progress endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from progression.core.progress_aggregator import ProgressAggregator
from progression.web.deps import current_student_id
from progression.web.schemas import VisitRequest, ok

router = APIRouter(prefix="/api/progress", tags=["progress"])


@router.get("/{unit_id}")
async def get_unit_progress(
    unit_id: str,
    student_id: str = Depends(current_student_id),
) -> dict[str, Any]:
    """Progress row for a unit (empty if never touched)."""
    progress = ProgressAggregator().get_unit_progress(student_id, unit_id)
    return ok(progress.to_dict())


@router.post("/{unit_id}/visit")
async def record_visit(
    unit_id: str,
    request: VisitRequest,
    student_id: str = Depends(current_student_id),
) -> dict[str, Any]:
    """Count a study or practice visit."""
    progress = ProgressAggregator().record_visit(
        student_id, unit_id, request.kind, time_spent=request.time_spent
    )
    return ok(progress.to_dict())
