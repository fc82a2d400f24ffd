"""Repository functions for the unit_progress table."""

from __future__ import annotations

import sqlite3
from dataclasses import fields

from progression.core.models import UnitProgress
from progression.db.database import use_connection

_COLUMNS = [f.name for f in fields(UnitProgress)]
_BOOL_COLUMNS = {"completed", "unlock_next", "unlocked"}


def _row_to_progress(row: sqlite3.Row) -> UnitProgress:
    values = {name: row[name] for name in _COLUMNS}
    for name in _BOOL_COLUMNS:
        values[name] = bool(values[name])
    return UnitProgress(**values)


def get_progress(
    student_id: str, unit_id: str, conn: sqlite3.Connection | None = None
) -> UnitProgress | None:
    """Get the progress row for a (student, unit) pair."""
    with use_connection(conn) as c:
        row = c.execute(
            "SELECT * FROM unit_progress WHERE student_id = ? AND unit_id = ?",
            (student_id, unit_id),
        ).fetchone()
    return _row_to_progress(row) if row else None


def list_progress(
    student_id: str,
    unit_ids: list[str],
    conn: sqlite3.Connection | None = None,
) -> dict[str, UnitProgress]:
    """Progress rows for the given units, keyed by unit_id."""
    if not unit_ids:
        return {}
    placeholders = ", ".join("?" for _ in unit_ids)
    with use_connection(conn) as c:
        rows = c.execute(
            f"SELECT * FROM unit_progress WHERE student_id = ? AND unit_id IN ({placeholders})",
            (student_id, *unit_ids),
        ).fetchall()
    return {row["unit_id"]: _row_to_progress(row) for row in rows}


def save_progress(conn: sqlite3.Connection, progress: UnitProgress) -> None:
    """Insert or replace a progress row inside the caller's transaction."""
    values = progress.to_dict()
    for name in _BOOL_COLUMNS:
        values[name] = int(values[name])

    columns = ", ".join(_COLUMNS)
    placeholders = ", ".join(f":{name}" for name in _COLUMNS)
    updates = ", ".join(
        f"{name} = excluded.{name}" for name in _COLUMNS if name not in ("student_id", "unit_id")
    )
    conn.execute(
        f"""
        INSERT INTO unit_progress ({columns}) VALUES ({placeholders})
        ON CONFLICT(student_id, unit_id) DO UPDATE SET {updates}
        """,
        values,
    )
