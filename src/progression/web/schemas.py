"""Pydantic schemas for the Web API.

Request bodies plus the success/failure envelope shared by every route.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field


# =============================================================================
# ENVELOPE
# =============================================================================


def ok(data: Any = None) -> dict[str, Any]:
    """Success envelope."""
    return {"success": True, "data": data}


def fail(message: str, retryable: bool = False) -> dict[str, Any]:
    """Business failure envelope."""
    body: dict[str, Any] = {"success": False, "message": message}
    if retryable:
        body["retryable"] = True
    return body


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


# =============================================================================
# PRACTICE SCHEMAS
# =============================================================================


class SessionStartRequest(BaseModel):
    """Request to open a practice session."""

    # unlock_test records are written by placement tests only
    practice_mode: Literal["normal", "review", "wrong_redo", "test"] = "normal"


class SubmitAnswerRequest(BaseModel):
    """One answer to an exercise of a unit."""

    exercise_id: str = Field(..., min_length=1)
    unit_id: str = Field(..., min_length=1)
    answer: Any = None
    response_time: int | None = Field(default=None, ge=0)


class SkipRequest(BaseModel):
    """Skip an exercise (resolved as incorrect with a null answer)."""

    exercise_id: str = Field(..., min_length=1)
    unit_id: str = Field(..., min_length=1)
    response_time: int | None = Field(default=None, ge=0)


class VisitRequest(BaseModel):
    """Study or practice visit to a unit."""

    kind: Literal["study", "practice"] = "study"
    time_spent: int = Field(default=0, ge=0)


# =============================================================================
# PLACEMENT SCHEMAS
# =============================================================================


class PlacementStartRequest(BaseModel):
    """Range and target of a placement test."""

    subject_code: str = Field(..., min_length=1)
    start_unit_id: str = Field(..., min_length=1)
    target_unit_id: str = Field(..., min_length=1)
    end_unit_id: str | None = None


class PlacementAnswerRequest(BaseModel):
    """One placement test answer."""

    exercise_id: str = Field(..., min_length=1)
    answer: Any = None
    response_time: int | None = Field(default=None, ge=0)


class PlacementCompleteRequest(BaseModel):
    """Optional client-computed unlock list, checked server-side."""

    unit_ids: list[str] | None = None


class BatchUnlockRequest(BaseModel):
    """Apply a placement test's unlocks."""

    placement_test_id: str = Field(..., min_length=1)
    unit_ids: list[str] | None = None
