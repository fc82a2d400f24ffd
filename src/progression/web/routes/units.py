"""Unit endpoints: batch unlock from a placement test."""

from typing import Any

from fastapi import APIRouter, Depends

from progression.core.placement_test import PlacementTestCoordinator
from progression.web.deps import current_student_id
from progression.web.schemas import BatchUnlockRequest, ok

router = APIRouter(prefix="/api/units", tags=["units"])


@router.post("/batch-unlock")
async def batch_unlock(
    request: BatchUnlockRequest,
    student_id: str = Depends(current_student_id),
) -> dict[str, Any]:
    """Unlock the units a placement test earned.

    The unlock set is recomputed from the test's logged answers; a
    client-supplied list that disagrees is rejected.
    """
    result = PlacementTestCoordinator().complete(
        request.placement_test_id, student_id, request.unit_ids
    )
    return ok({"unlocked": result.unlocked, "score": result.score.to_dict()})
