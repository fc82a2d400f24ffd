"""Placement test endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from progression.core.placement_test import PlacementTestCoordinator
from progression.web.deps import current_student_id
from progression.web.schemas import (
    PlacementAnswerRequest,
    PlacementCompleteRequest,
    PlacementStartRequest,
    ok,
)

router = APIRouter(prefix="/api/placement-tests", tags=["placement"])


@router.post("")
async def start_placement_test(
    request: PlacementStartRequest,
    student_id: str = Depends(current_student_id),
) -> dict[str, Any]:
    """Create a placement test and return its questions without answer keys."""
    coordinator = PlacementTestCoordinator()
    test = coordinator.start(
        student_id,
        request.subject_code,
        request.start_unit_id,
        request.target_unit_id,
        end_unit_id=request.end_unit_id,
    )
    return ok(
        {
            **test.to_dict(),
            "exercises": coordinator.questions(test),
        }
    )


@router.get("/{test_id}")
async def get_placement_test(
    test_id: str,
    student_id: str = Depends(current_student_id),
) -> dict[str, Any]:
    """Placement test definition and current score."""
    coordinator = PlacementTestCoordinator()
    test = coordinator.get_test(test_id, student_id)
    return ok({**test.to_dict(), "score": coordinator.score(test).to_dict()})


@router.post("/{test_id}/answers")
async def answer_placement_question(
    test_id: str,
    request: PlacementAnswerRequest,
    student_id: str = Depends(current_student_id),
) -> dict[str, Any]:
    """Grade one placement answer. The correct answer is not revealed."""
    evaluation = PlacementTestCoordinator().answer(
        test_id,
        student_id,
        request.exercise_id,
        request.answer,
        response_time=request.response_time,
    )
    return ok({"exercise_id": request.exercise_id, "is_correct": evaluation.is_correct})


@router.post("/{test_id}/complete")
async def complete_placement_test(
    test_id: str,
    request: PlacementCompleteRequest | None = None,
    student_id: str = Depends(current_student_id),
) -> dict[str, Any]:
    """Score the test and unlock its range if it passed."""
    requested = request.unit_ids if request is not None else None
    result = PlacementTestCoordinator().complete(test_id, student_id, requested)
    return ok(result.to_dict())
