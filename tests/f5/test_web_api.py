"""Tests for the Web API routes."""

import pytest
from fastapi.testclient import TestClient

from progression.web.api import create_app
from progression.web.sessions import reset_session_manager

HEADERS = {"X-Student-Id": "stu01"}


@pytest.fixture
def client(catalog_db):
    """Create test client over the isolated catalog database."""
    reset_session_manager()
    yield TestClient(create_app(), raise_server_exceptions=False)
    reset_session_manager()


def _open_session(client) -> str:
    response = client.post("/api/practice/sessions", json={}, headers=HEADERS)
    return response.json()["data"]["session_id"]


class TestHealth:
    """Tests for GET /health."""

    def test_health_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestPractice:
    """Tests for practice session endpoints."""

    def test_submit_correct(self, client):
        """Envelope carries the progress counters."""
        session_id = _open_session(client)
        response = client.post(
            f"/api/practice/sessions/{session_id}/submit",
            json={"exercise_id": "u1-choice", "unit_id": "math-u1", "answer": 1},
            headers=HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["is_correct"] is True
        assert data["correct_count"] == 1
        assert data["incorrect_count"] == 0
        assert data["total_answers"] == 1
        assert 0 < data["mastery_level"] <= 1

    def test_resubmit_is_business_failure(self, client):
        """A resolved exercise answers with HTTP 200 and success=false."""
        session_id = _open_session(client)
        payload = {"exercise_id": "u1-choice", "unit_id": "math-u1", "answer": 1}
        client.post(f"/api/practice/sessions/{session_id}/submit", json=payload, headers=HEADERS)
        response = client.post(
            f"/api/practice/sessions/{session_id}/submit", json=payload, headers=HEADERS
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert "already resolved" in body["message"]

    def test_unknown_exercise_is_404(self, client):
        session_id = _open_session(client)
        response = client.post(
            f"/api/practice/sessions/{session_id}/submit",
            json={"exercise_id": "nope", "unit_id": "math-u1", "answer": 1},
            headers=HEADERS,
        )
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_unknown_session_is_404(self, client):
        response = client.post(
            "/api/practice/sessions/missing/skip",
            json={"exercise_id": "u1-choice", "unit_id": "math-u1"},
            headers=HEADERS,
        )
        assert response.status_code == 404

    def test_session_owned_by_other_student(self, client):
        session_id = _open_session(client)
        response = client.delete(
            f"/api/practice/sessions/{session_id}", headers={"X-Student-Id": "stu02"}
        )
        assert response.status_code == 404

    def test_unknown_student_is_404(self, client):
        response = client.post(
            "/api/practice/sessions", json={}, headers={"X-Student-Id": "ghost"}
        )
        assert response.status_code == 404

    def test_unlock_test_mode_rejected(self, client):
        """Placement mode cannot be used for practice sessions."""
        response = client.post(
            "/api/practice/sessions", json={"practice_mode": "unlock_test"}, headers=HEADERS
        )
        assert response.status_code == 422

    def test_skip_and_end(self, client):
        session_id = _open_session(client)
        response = client.post(
            f"/api/practice/sessions/{session_id}/skip",
            json={"exercise_id": "u1-choice", "unit_id": "math-u1"},
            headers=HEADERS,
        )
        assert response.json()["data"]["outcome"] == "skipped"

        response = client.delete(f"/api/practice/sessions/{session_id}", headers=HEADERS)
        assert response.json()["success"] is True


class TestProgressAndTracks:
    """Tests for progress and track endpoints."""

    def test_get_progress_empty(self, client):
        response = client.get("/api/progress/math-u1", headers=HEADERS)
        data = response.json()["data"]
        assert data["total_exercises"] == 5
        assert data["completed"] is False

    def test_visit(self, client):
        response = client.post(
            "/api/progress/math-u1/visit", json={"kind": "practice"}, headers=HEADERS
        )
        assert response.json()["data"]["practice_count"] == 1

    def test_track(self, client):
        response = client.get("/api/tracks/math", headers=HEADERS)
        units = response.json()["data"]["units"]
        assert [u["accessible"] for u in units] == [True, False, False, False]

    def test_unknown_subject(self, client):
        response = client.get("/api/tracks/history", headers=HEADERS)
        assert response.status_code == 404


class TestPlacementFlow:
    """Tests for placement tests and batch unlock over HTTP."""

    def _start(self, client) -> str:
        response = client.post(
            "/api/placement-tests",
            json={
                "subject_code": "math",
                "start_unit_id": "math-u1",
                "end_unit_id": "math-u3",
                "target_unit_id": "math-u4",
            },
            headers=HEADERS,
        )
        data = response.json()["data"]
        # Answer keys are never sent to the learner
        assert all("correct_answer" not in e for e in data["exercises"])
        return data["test_id"]

    def test_batch_unlock(self, client):
        test_id = self._start(client)
        client.post(
            f"/api/placement-tests/{test_id}/answers",
            json={"exercise_id": "u1-choice", "answer": 1},
            headers=HEADERS,
        )

        response = client.post(
            "/api/units/batch-unlock", json={"placement_test_id": test_id}, headers=HEADERS
        )
        body = response.json()
        assert body["success"] is True
        assert sorted(body["data"]["unlocked"]) == ["math-u1", "math-u2"]

        units = client.get("/api/tracks/math", headers=HEADERS).json()["data"]["units"]
        assert [u["accessible"] for u in units] == [True, True, False, False]

    def test_mismatched_unit_ids(self, client):
        """Client-supplied ids that disagree are a business failure."""
        test_id = self._start(client)
        response = client.post(
            "/api/units/batch-unlock",
            json={"placement_test_id": test_id, "unit_ids": ["math-u4"]},
            headers=HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_invalid_range(self, client):
        response = client.post(
            "/api/placement-tests",
            json={
                "subject_code": "math",
                "start_unit_id": "math-u3",
                "end_unit_id": "math-u1",
                "target_unit_id": "math-u4",
            },
            headers=HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["success"] is False


class TestWrongAnswers:
    """Tests for GET /api/answers/wrong."""

    def test_wrong_then_fixed(self, client):
        """The error book keeps only exercises still answered wrong."""
        session_id = _open_session(client)
        client.post(
            f"/api/practice/sessions/{session_id}/skip",
            json={"exercise_id": "u1-choice", "unit_id": "math-u1"},
            headers=HEADERS,
        )
        items = client.get("/api/answers/wrong", headers=HEADERS).json()["data"]["items"]
        assert [i["exercise_id"] for i in items] == ["u1-choice"]
        assert "correct_answer" not in items[0]["exercise"]

        other = _open_session(client)
        client.post(
            f"/api/practice/sessions/{other}/submit",
            json={"exercise_id": "u1-choice", "unit_id": "math-u1", "answer": 1},
            headers=HEADERS,
        )
        items = client.get("/api/answers/wrong", headers=HEADERS).json()["data"]["items"]
        assert items == []
