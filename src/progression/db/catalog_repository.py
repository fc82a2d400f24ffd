"""Repository functions for the read-only catalog.

Students, units and exercises are owned by external collaborators (auth
store, course authoring). The engine only reads them; the loader below
exists so the CLI and tests can populate a local database from a YAML
catalog file.
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

import structlog
import yaml

from progression.core.models import EXERCISE_TYPES, Exercise, Unit
from progression.db.database import get_db, use_connection

logger = structlog.get_logger(__name__)


class CatalogLoadError(Exception):
    """Error loading a catalog file."""

    pass


# =============================================================================
# ROW MAPPING
# =============================================================================


def _row_to_unit(row: sqlite3.Row) -> Unit:
    return Unit(
        unit_id=row["unit_id"],
        subject_code=row["subject_code"],
        title=row["title"],
        level=row["level"],
        order=row["sort_order"],
        unit_type=row["unit_type"],
        total_exercises=row["total_exercises"],
    )


def _row_to_exercise(row: sqlite3.Row) -> Exercise:
    return Exercise(
        exercise_id=row["exercise_id"],
        unit_id=row["unit_id"],
        type=row["type"],
        correct_answer=json.loads(row["correct_answer"]) if row["correct_answer"] else None,
        question=row["question"],
        options=json.loads(row["options"]) if row["options"] else None,
        difficulty=row["difficulty"],
        explanation=row["explanation"],
        knowledge_point_ids=tuple(json.loads(row["knowledge_point_ids"] or "[]")),
        position=row["position"],
    )


_UNIT_SELECT = """
    SELECT u.*, (
        SELECT COUNT(*) FROM exercises e WHERE e.unit_id = u.unit_id
    ) AS total_exercises
    FROM units u
"""


# =============================================================================
# READS
# =============================================================================


def get_student(student_id: str, conn: sqlite3.Connection | None = None) -> dict[str, Any] | None:
    """Get a student by ID."""
    with use_connection(conn) as c:
        row = c.execute(
            "SELECT * FROM students WHERE student_id = ?", (student_id,)
        ).fetchone()
    return dict(row) if row else None


def get_unit(unit_id: str, conn: sqlite3.Connection | None = None) -> Unit | None:
    """Get a unit by ID, with its exercise count."""
    with use_connection(conn) as c:
        row = c.execute(f"{_UNIT_SELECT} WHERE u.unit_id = ?", (unit_id,)).fetchone()
    return _row_to_unit(row) if row else None


def list_track_units(
    subject_code: str, conn: sqlite3.Connection | None = None
) -> list[Unit]:
    """List the units of a subject in track order (level, then order)."""
    with use_connection(conn) as c:
        rows = c.execute(
            f"{_UNIT_SELECT} WHERE u.subject_code = ? ORDER BY u.level, u.sort_order, u.unit_id",
            (subject_code,),
        ).fetchall()
    return [_row_to_unit(r) for r in rows]


def get_exercise(exercise_id: str, conn: sqlite3.Connection | None = None) -> Exercise | None:
    """Get an exercise by ID."""
    with use_connection(conn) as c:
        row = c.execute(
            "SELECT * FROM exercises WHERE exercise_id = ?", (exercise_id,)
        ).fetchone()
    return _row_to_exercise(row) if row else None


def list_unit_exercises(unit_id: str, conn: sqlite3.Connection | None = None) -> list[Exercise]:
    """List a unit's exercises in authored order."""
    with use_connection(conn) as c:
        rows = c.execute(
            "SELECT * FROM exercises WHERE unit_id = ? ORDER BY position, exercise_id",
            (unit_id,),
        ).fetchall()
    return [_row_to_exercise(r) for r in rows]


# =============================================================================
# LOADING
# =============================================================================


def _validate_catalog(data: dict[str, Any]) -> None:
    """Reject catalogs with missing ids or unknown exercise types."""
    for unit in data.get("units", []):
        if not unit.get("unit_id") or not unit.get("subject_code"):
            raise CatalogLoadError(f"Unit without unit_id/subject_code: {unit}")
        if unit.get("unit_type", "normal") not in ("normal", "exercise"):
            raise CatalogLoadError(f"Invalid unit_type for {unit['unit_id']}")

    for unit in data.get("units", []):
        for exercise in unit.get("exercises", []):
            if not exercise.get("exercise_id"):
                raise CatalogLoadError(f"Exercise without exercise_id in {unit['unit_id']}")
            if exercise.get("type") not in EXERCISE_TYPES:
                raise CatalogLoadError(
                    f"Unknown exercise type '{exercise.get('type')}' "
                    f"for {exercise['exercise_id']}"
                )


def load_catalog(data: dict[str, Any]) -> dict[str, int]:
    """Upsert students, units and exercises from a catalog mapping.

    Expected shape::

        students: [{student_id, name}]
        units:
          - unit_id, subject_code, title, level, order, unit_type
            exercises: [{exercise_id, type, correct_answer, ...}]

    Returns:
        Counts of loaded students, units and exercises
    """
    _validate_catalog(data)
    counts = {"students": 0, "units": 0, "exercises": 0}

    with get_db() as conn:
        for student in data.get("students", []):
            conn.execute(
                """
                INSERT INTO students (student_id, name) VALUES (?, ?)
                ON CONFLICT(student_id) DO UPDATE SET name = excluded.name
                """,
                (student["student_id"], student.get("name", student["student_id"])),
            )
            counts["students"] += 1

        for unit in data.get("units", []):
            conn.execute(
                """
                INSERT INTO units (unit_id, subject_code, title, level, sort_order, unit_type)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(unit_id) DO UPDATE SET
                    subject_code = excluded.subject_code,
                    title = excluded.title,
                    level = excluded.level,
                    sort_order = excluded.sort_order,
                    unit_type = excluded.unit_type
                """,
                (
                    unit["unit_id"],
                    unit["subject_code"],
                    unit.get("title", ""),
                    int(unit.get("level", 1)),
                    int(unit.get("order", 0)),
                    unit.get("unit_type", "normal"),
                ),
            )
            counts["units"] += 1

            for position, exercise in enumerate(unit.get("exercises", [])):
                conn.execute(
                    """
                    INSERT INTO exercises (
                        exercise_id, unit_id, position, type, question, options,
                        correct_answer, difficulty, explanation, knowledge_point_ids
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(exercise_id) DO UPDATE SET
                        unit_id = excluded.unit_id,
                        position = excluded.position,
                        type = excluded.type,
                        question = excluded.question,
                        options = excluded.options,
                        correct_answer = excluded.correct_answer,
                        difficulty = excluded.difficulty,
                        explanation = excluded.explanation,
                        knowledge_point_ids = excluded.knowledge_point_ids
                    """,
                    (
                        exercise["exercise_id"],
                        unit["unit_id"],
                        position,
                        exercise["type"],
                        exercise.get("question", ""),
                        json.dumps(exercise.get("options"), ensure_ascii=False)
                        if exercise.get("options") is not None
                        else None,
                        json.dumps(exercise.get("correct_answer"), ensure_ascii=False)
                        if "correct_answer" in exercise
                        else None,
                        exercise.get("difficulty", "medium"),
                        exercise.get("explanation", ""),
                        json.dumps(exercise.get("knowledge_point_ids", [])),
                    ),
                )
                counts["exercises"] += 1

    logger.info("catalog_loaded", **counts)
    return counts


def load_catalog_file(path: Path) -> dict[str, int]:
    """Load a YAML (or JSON) catalog file into the database.

    Raises:
        CatalogLoadError: If the file is missing or malformed
    """
    if not path.exists():
        raise CatalogLoadError(f"Catalog file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise CatalogLoadError(f"Invalid catalog file {path}: {e}") from e

    if not isinstance(data, dict):
        raise CatalogLoadError(f"Catalog file {path} must contain a mapping")

    return load_catalog(data)
