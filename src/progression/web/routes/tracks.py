"""Subject track endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from progression.core.unlock_gate import track_access
from progression.web.deps import current_student_id
from progression.web.schemas import ok

router = APIRouter(prefix="/api/tracks", tags=["tracks"])


@router.get("/{subject_code}")
async def get_track(
    subject_code: str,
    student_id: str = Depends(current_student_id),
) -> dict[str, Any]:
    """Units of a subject in track order, with their access decision."""
    decisions = track_access(student_id, subject_code)
    return ok(
        {
            "subject_code": subject_code,
            "units": [d.to_dict() for d in decisions],
        }
    )
