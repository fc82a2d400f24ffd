"""Repository functions for placement tests."""

from __future__ import annotations

import json
import sqlite3
from typing import Any

from progression.db.database import use_connection


def insert_placement_test(conn: sqlite3.Connection, test: dict[str, Any]) -> None:
    """Store a new placement test definition."""
    conn.execute(
        """
        INSERT INTO placement_tests (
            test_id, student_id, subject_code, start_unit_id, end_unit_id,
            target_unit_id, unit_ids, questions, status, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'open', ?)
        """,
        (
            test["test_id"],
            test["student_id"],
            test["subject_code"],
            test["start_unit_id"],
            test["end_unit_id"],
            test["target_unit_id"],
            json.dumps(test["unit_ids"]),
            json.dumps(test["questions"], ensure_ascii=False),
            test["created_at"],
        ),
    )


def get_placement_test(
    test_id: str, conn: sqlite3.Connection | None = None
) -> dict[str, Any] | None:
    """Load a placement test definition as a plain dict."""
    with use_connection(conn) as c:
        row = c.execute(
            "SELECT * FROM placement_tests WHERE test_id = ?", (test_id,)
        ).fetchone()
    if row is None:
        return None
    data = dict(row)
    data["unit_ids"] = json.loads(data["unit_ids"])
    data["questions"] = json.loads(data["questions"])
    return data


def mark_placement_completed(
    conn: sqlite3.Connection, test_id: str, completed_at: str
) -> None:
    """Close a placement test."""
    conn.execute(
        "UPDATE placement_tests SET status = 'completed', completed_at = ? WHERE test_id = ?",
        (completed_at, test_id),
    )
