"""Answer record repository.

Responsibilities:
- Append durable answer outcomes to the answer_records log
- Query the log for progress recomputation, streaks and the error book

The log is append-only: there is no update or delete function, and the
schema rejects UPDATE statements on the table.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import replace

import structlog

from progression.core.models import AnswerRecord, utc_now
from progression.db.database import use_connection

logger = structlog.get_logger(__name__)

PLACEMENT_MODE = "unlock_test"


def _row_to_record(row: sqlite3.Row) -> AnswerRecord:
    return AnswerRecord(
        record_id=row["record_id"],
        student_id=row["student_id"],
        exercise_id=row["exercise_id"],
        unit_id=row["unit_id"],
        is_correct=bool(row["is_correct"]),
        graded=bool(row["graded"]),
        user_answer=json.loads(row["user_answer"]) if row["user_answer"] is not None else None,
        response_time=row["response_time"],
        session_id=row["session_id"],
        practice_mode=row["practice_mode"],
        attempt_number=row["attempt_number"],
        points_earned=row["points_earned"],
        created_at=row["created_at"],
    )


def append_answer_record(conn: sqlite3.Connection, record: AnswerRecord) -> AnswerRecord:
    """Append a record to the log inside the caller's transaction.

    Returns:
        The stored record with record_id and created_at set
    """
    created_at = record.created_at or utc_now()
    cursor = conn.execute(
        """
        INSERT INTO answer_records (
            student_id, exercise_id, unit_id, is_correct, graded, user_answer,
            response_time, session_id, practice_mode, attempt_number,
            points_earned, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            record.student_id,
            record.exercise_id,
            record.unit_id,
            int(record.is_correct),
            int(record.graded),
            json.dumps(record.user_answer, ensure_ascii=False)
            if record.user_answer is not None
            else None,
            record.response_time,
            record.session_id,
            record.practice_mode,
            record.attempt_number,
            record.points_earned,
            created_at,
        ),
    )

    stored = replace(record, record_id=cursor.lastrowid, created_at=created_at)
    logger.debug(
        "answer_record_appended",
        record_id=stored.record_id,
        student_id=stored.student_id,
        exercise_id=stored.exercise_id,
        is_correct=stored.is_correct,
        practice_mode=stored.practice_mode,
    )
    return stored


def list_records(
    student_id: str,
    unit_id: str | None = None,
    session_id: str | None = None,
    practice_mode: str | None = None,
    conn: sqlite3.Connection | None = None,
) -> list[AnswerRecord]:
    """List a student's records, oldest first, with optional filters."""
    query = "SELECT * FROM answer_records WHERE student_id = ?"
    params: list[object] = [student_id]
    if unit_id is not None:
        query += " AND unit_id = ?"
        params.append(unit_id)
    if session_id is not None:
        query += " AND session_id = ?"
        params.append(session_id)
    if practice_mode is not None:
        query += " AND practice_mode = ?"
        params.append(practice_mode)
    query += " ORDER BY record_id"

    with use_connection(conn) as c:
        rows = c.execute(query, params).fetchall()
    return [_row_to_record(r) for r in rows]


def count_completed_exercises(
    conn: sqlite3.Connection, student_id: str, unit_id: str
) -> int:
    """Distinct exercises of a unit with at least one correct durable record.

    Only exercises that belong to the unit in the catalog count, and
    placement-test answers are excluded.
    """
    row = conn.execute(
        """
        SELECT COUNT(DISTINCT r.exercise_id) AS completed
        FROM answer_records r
        JOIN exercises e ON e.exercise_id = r.exercise_id AND e.unit_id = r.unit_id
        WHERE r.student_id = ? AND r.unit_id = ? AND r.is_correct = 1
          AND r.practice_mode != ?
        """,
        (student_id, unit_id, PLACEMENT_MODE),
    ).fetchone()
    return int(row["completed"])


def completed_exercise_ids(
    student_id: str, unit_id: str, conn: sqlite3.Connection | None = None
) -> set[str]:
    """IDs of a unit's exercises the student has answered correctly."""
    with use_connection(conn) as c:
        rows = c.execute(
            """
            SELECT DISTINCT exercise_id FROM answer_records
            WHERE student_id = ? AND unit_id = ? AND is_correct = 1
              AND practice_mode != ?
            """,
            (student_id, unit_id, PLACEMENT_MODE),
        ).fetchall()
    return {r["exercise_id"] for r in rows}


def count_recent_correct(conn: sqlite3.Connection, student_id: str, limit: int) -> int:
    """Correct answers among the student's last `limit` practice records."""
    row = conn.execute(
        """
        SELECT COALESCE(SUM(is_correct), 0) AS correct FROM (
            SELECT is_correct FROM answer_records
            WHERE student_id = ? AND practice_mode != ?
            ORDER BY record_id DESC
            LIMIT ?
        )
        """,
        (student_id, PLACEMENT_MODE, limit),
    ).fetchone()
    return int(row["correct"])


def list_wrong_exercises(
    student_id: str,
    unit_id: str | None = None,
    conn: sqlite3.Connection | None = None,
) -> list[AnswerRecord]:
    """Latest record per exercise, kept only where it is still wrong.

    Placement answers and ungraded answers are not part of the error book.
    """
    query = """
        SELECT r.* FROM answer_records r
        JOIN (
            SELECT exercise_id, MAX(record_id) AS latest
            FROM answer_records
            WHERE student_id = ? AND practice_mode != ? AND graded = 1
            GROUP BY exercise_id
        ) l ON l.latest = r.record_id
        WHERE r.is_correct = 0
    """
    params: list[object] = [student_id, PLACEMENT_MODE]
    if unit_id is not None:
        query += " AND r.unit_id = ?"
        params.append(unit_id)
    query += " ORDER BY r.record_id DESC"

    with use_connection(conn) as c:
        rows = c.execute(query, params).fetchall()
    return [_row_to_record(r) for r in rows]
