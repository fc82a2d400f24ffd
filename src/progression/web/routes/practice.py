"""Practice session endpoints: open, submit, skip, close."""

from typing import Any

from fastapi import APIRouter, Depends

from progression.web.deps import current_student_id
from progression.web.schemas import SessionStartRequest, SkipRequest, SubmitAnswerRequest, ok
from progression.web.sessions import get_session_manager

router = APIRouter(prefix="/api/practice/sessions", tags=["practice"])


@router.post("")
async def start_session(
    request: SessionStartRequest,
    student_id: str = Depends(current_student_id),
) -> dict[str, Any]:
    """Open a practice session."""
    session = await get_session_manager().create_session(student_id, request.practice_mode)
    return ok(
        {
            "session_id": session.session_id,
            "practice_mode": session.context.practice_mode,
        }
    )


@router.post("/{session_id}/submit")
async def submit_answer(
    session_id: str,
    request: SubmitAnswerRequest,
    student_id: str = Depends(current_student_id),
) -> dict[str, Any]:
    """Grade an answer and apply the one-retry policy."""
    session = await get_session_manager().get_session(session_id, student_id)
    outcome = session.submit(
        request.exercise_id,
        request.unit_id,
        request.answer,
        response_time=request.response_time,
    )
    return ok(outcome.to_dict())


@router.post("/{session_id}/skip")
async def skip_exercise(
    session_id: str,
    request: SkipRequest,
    student_id: str = Depends(current_student_id),
) -> dict[str, Any]:
    """Resolve an exercise as incorrect without an answer."""
    session = await get_session_manager().get_session(session_id, student_id)
    outcome = session.skip(request.exercise_id, request.unit_id, response_time=request.response_time)
    return ok(outcome.to_dict())


@router.delete("/{session_id}")
async def end_session(
    session_id: str,
    student_id: str = Depends(current_student_id),
) -> dict[str, Any]:
    """Close a practice session."""
    await get_session_manager().end_session(session_id, student_id)
    return ok({"session_id": session_id})
