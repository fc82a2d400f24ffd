"""Error book endpoint."""

from typing import Any

from fastapi import APIRouter, Depends

from progression.db.answer_records import list_wrong_exercises
from progression.db.catalog_repository import get_exercise
from progression.web.deps import current_student_id
from progression.web.schemas import ok

router = APIRouter(prefix="/api/answers", tags=["answers"])


@router.get("/wrong")
async def list_wrong_answers(
    unit_id: str | None = None,
    student_id: str = Depends(current_student_id),
) -> dict[str, Any]:
    """Exercises whose latest graded answer is still wrong."""
    items = []
    for record in list_wrong_exercises(student_id, unit_id=unit_id):
        exercise = get_exercise(record.exercise_id)
        items.append(
            {
                **record.to_dict(),
                "exercise": exercise.to_public_dict() if exercise else None,
            }
        )
    return ok({"items": items, "count": len(items)})
