"""HTTP client for practice front-ends.

Wraps the progression Web API with httpx. Answer submissions are graded
locally as well, so a front-end can still show feedback when the server
is unreachable: such results come back with ``synced=False`` and stay in
``pending`` until an explicit ``flush()``. Nothing is retried
automatically and a timeout is always a failed submission.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from progression.config.app_config import load_app_config
from progression.core.answer_evaluator import evaluate
from progression.core.errors import ProgressionError, TransientNetworkError
from progression.core.models import Exercise

logger = structlog.get_logger(__name__)


class ApiError(ProgressionError):
    """Server answered with a failure envelope or an error status."""

    def __init__(self, message: str, status_code: int = 200, retryable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


@dataclass
class PendingSubmission:
    """A submission that did not reach the server."""

    session_id: str
    exercise_id: str
    unit_id: str
    answer: Any
    response_time: int | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "exercise_id": self.exercise_id,
            "unit_id": self.unit_id,
            "answer": self.answer,
            "response_time": self.response_time,
        }


@dataclass
class SubmissionResult:
    """Result of a submit call, synced with the server or local only."""

    exercise_id: str
    is_correct: bool
    synced: bool
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


class ProgressionClient:
    """Client for one student against the progression API."""

    def __init__(
        self,
        student_id: str,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            student_id: Sent as X-Student-Id on every request
            base_url: API root (from config if not provided)
            timeout: Request timeout in seconds (from config if not provided)
            transport: Custom httpx transport
        """
        config = load_app_config().client
        self.student_id = student_id
        self.base_url = base_url or config.base_url
        self.timeout = timeout if timeout is not None else config.timeout_seconds
        self.pending: list[PendingSubmission] = []
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"X-Student-Id": student_id},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ProgressionClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _request(self, method: str, path: str, json: Any = None, params: Any = None) -> Any:
        """Send a request and unwrap the response envelope.

        Raises:
            TransientNetworkError: Timeout or connection failure
            ApiError: Failure envelope, 404 or server fault
        """
        try:
            response = self._client.request(method, path, json=json, params=params)
        except httpx.TimeoutException as e:
            raise TransientNetworkError(
                f"Request to {path} timed out after {self.timeout}s"
            ) from e
        except httpx.TransportError as e:
            raise TransientNetworkError(f"Could not reach {self.base_url}: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400 or not body.get("success", False):
            message = body.get("message") or f"HTTP {response.status_code}"
            raise ApiError(
                message,
                status_code=response.status_code,
                retryable=bool(body.get("retryable", False)),
            )
        return body.get("data")

    # -------------------------------------------------------------------------
    # Practice
    # -------------------------------------------------------------------------

    def start_session(self, practice_mode: str = "normal") -> str:
        data = self._request(
            "POST", "/api/practice/sessions", json={"practice_mode": practice_mode}
        )
        return data["session_id"]

    def end_session(self, session_id: str) -> None:
        self._request("DELETE", f"/api/practice/sessions/{session_id}")

    def submit(
        self,
        session_id: str,
        exercise: Exercise,
        unit_id: str,
        answer: Any,
        response_time: int | None = None,
    ) -> SubmissionResult:
        """Submit an answer, falling back to local grading when offline.

        Raises:
            ApiError: The server rejected the submission
        """
        pending = PendingSubmission(
            session_id=session_id,
            exercise_id=exercise.exercise_id,
            unit_id=unit_id,
            answer=answer,
            response_time=response_time,
        )
        try:
            data = self._send(pending)
        except TransientNetworkError as e:
            local = evaluate(exercise, answer)
            self.pending.append(pending)
            logger.warning(
                "submission_not_synced",
                session_id=session_id,
                exercise_id=exercise.exercise_id,
                error=e.message,
                pending=len(self.pending),
            )
            return SubmissionResult(
                exercise_id=exercise.exercise_id,
                is_correct=local.is_correct,
                synced=False,
                error=e.message,
            )

        return SubmissionResult(
            exercise_id=exercise.exercise_id,
            is_correct=bool(data["is_correct"]),
            synced=True,
            data=data,
        )

    def _send(self, pending: PendingSubmission) -> dict[str, Any]:
        return self._request(
            "POST",
            f"/api/practice/sessions/{pending.session_id}/submit",
            json=pending.to_payload(),
        )

    def flush(self) -> list[SubmissionResult]:
        """Re-send pending submissions in order.

        Stops at the first transient failure and keeps the rest pending.
        Submissions the server rejects are dropped from the queue.
        """
        results = []
        while self.pending:
            pending = self.pending[0]
            try:
                data = self._send(pending)
            except TransientNetworkError:
                logger.info("flush_interrupted", remaining=len(self.pending))
                break
            except ApiError as e:
                self.pending.pop(0)
                logger.warning(
                    "pending_submission_rejected",
                    exercise_id=pending.exercise_id,
                    error=e.message,
                )
                results.append(
                    SubmissionResult(
                        exercise_id=pending.exercise_id,
                        is_correct=False,
                        synced=False,
                        error=e.message,
                    )
                )
                continue

            self.pending.pop(0)
            results.append(
                SubmissionResult(
                    exercise_id=pending.exercise_id,
                    is_correct=bool(data["is_correct"]),
                    synced=True,
                    data=data,
                )
            )
        return results

    # -------------------------------------------------------------------------
    # Progress, tracks and placement
    # -------------------------------------------------------------------------

    def get_unit_progress(self, unit_id: str) -> dict[str, Any]:
        return self._request("GET", f"/api/progress/{unit_id}")

    def get_track(self, subject_code: str) -> list[dict[str, Any]]:
        return self._request("GET", f"/api/tracks/{subject_code}")["units"]

    def start_placement_test(
        self,
        subject_code: str,
        start_unit_id: str,
        target_unit_id: str,
        end_unit_id: str | None = None,
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            "/api/placement-tests",
            json={
                "subject_code": subject_code,
                "start_unit_id": start_unit_id,
                "target_unit_id": target_unit_id,
                "end_unit_id": end_unit_id,
            },
        )

    def answer_placement_question(self, test_id: str, exercise_id: str, answer: Any) -> bool:
        data = self._request(
            "POST",
            f"/api/placement-tests/{test_id}/answers",
            json={"exercise_id": exercise_id, "answer": answer},
        )
        return bool(data["is_correct"])

    def batch_unlock(self, placement_test_id: str, unit_ids: list[str] | None = None) -> list[str]:
        """Apply a placement test's unlocks.

        Raises:
            ApiError: Rolled back (retryable) or rejected
            TransientNetworkError: Outcome unknown; call again to retry
        """
        data = self._request(
            "POST",
            "/api/units/batch-unlock",
            json={"placement_test_id": placement_test_id, "unit_ids": unit_ids},
        )
        return data["unlocked"]

    def wrong_answers(self, unit_id: str | None = None) -> list[dict[str, Any]]:
        params = {"unit_id": unit_id} if unit_id else None
        return self._request("GET", "/api/answers/wrong", params=params)["items"]
