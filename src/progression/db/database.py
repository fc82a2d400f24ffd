"""SQLite database connection and schema management.

Provides connection management, write transactions and schema
initialization for the progression engine.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import structlog

logger = structlog.get_logger(__name__)

# Default database location
DEFAULT_DB_PATH = Path("db/progression.db")
DEFAULT_BUSY_TIMEOUT = 10.0

# Current database (module-level, set by init_db)
_db_path: Path | None = None
_busy_timeout: float = DEFAULT_BUSY_TIMEOUT


def init_db(db_path: Path | None = None, busy_timeout: float | None = None) -> None:
    """Initialize database with schema.

    Creates the database file and all required tables if they don't exist.

    Args:
        db_path: Path to database file. Defaults to db/progression.db
        busy_timeout: Seconds to wait for a competing writer
    """
    global _db_path, _busy_timeout
    _db_path = db_path or DEFAULT_DB_PATH
    if busy_timeout is not None:
        _busy_timeout = busy_timeout

    # Ensure directory exists
    _db_path.parent.mkdir(parents=True, exist_ok=True)

    # executescript manages its own transaction
    conn = _connect()
    try:
        _create_schema(conn)
    finally:
        conn.close()

    logger.info("database.initialized", path=str(_db_path))


def current_db_path() -> Path:
    """Path of the active database."""
    return _db_path or DEFAULT_DB_PATH


def _connect() -> sqlite3.Connection:
    db_path = current_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=_busy_timeout, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get database connection as context manager.

    Statements run in a deferred transaction that is committed on exit
    and rolled back on error.

    Yields:
        SQLite connection with row factory set to sqlite3.Row
    """
    conn = _connect()
    try:
        conn.execute("BEGIN")
        yield conn
        conn.execute("COMMIT")
    except Exception:
        conn.execute("ROLLBACK")
        raise
    finally:
        conn.close()


@contextmanager
def transaction() -> Generator[sqlite3.Connection, None, None]:
    """Open a write transaction that takes the database write lock upfront.

    BEGIN IMMEDIATE serializes concurrent writers, so read-modify-write
    sequences (progress counters, batch unlocks) never lose updates.
    Any exception rolls back every statement in the block.
    """
    conn = _connect()
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.execute("COMMIT")
    except Exception:
        conn.execute("ROLLBACK")
        raise
    finally:
        conn.close()


@contextmanager
def use_connection(
    conn: sqlite3.Connection | None,
) -> Generator[sqlite3.Connection, None, None]:
    """Reuse a caller's connection, or open a short-lived one."""
    if conn is not None:
        yield conn
        return
    with get_db() as own:
        yield own


def _create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency.
    """
    conn.executescript(
        """
        -- Catalog (read-only for the engine, loaded by the CLI)
        CREATE TABLE IF NOT EXISTS students (
            student_id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        CREATE TABLE IF NOT EXISTS units (
            unit_id TEXT PRIMARY KEY,
            subject_code TEXT NOT NULL,
            title TEXT NOT NULL DEFAULT '',
            level INTEGER NOT NULL DEFAULT 1,
            sort_order INTEGER NOT NULL DEFAULT 0,
            unit_type TEXT NOT NULL DEFAULT 'normal' CHECK(unit_type IN ('normal', 'exercise'))
        );

        CREATE TABLE IF NOT EXISTS exercises (
            exercise_id TEXT PRIMARY KEY,
            unit_id TEXT NOT NULL REFERENCES units(unit_id),
            position INTEGER NOT NULL DEFAULT 0,
            type TEXT NOT NULL,
            question TEXT NOT NULL DEFAULT '',
            options TEXT,
            correct_answer TEXT,
            difficulty TEXT NOT NULL DEFAULT 'medium',
            explanation TEXT NOT NULL DEFAULT '',
            knowledge_point_ids TEXT NOT NULL DEFAULT '[]'
        );

        -- Append-only answer log
        CREATE TABLE IF NOT EXISTS answer_records (
            record_id INTEGER PRIMARY KEY AUTOINCREMENT,
            student_id TEXT NOT NULL REFERENCES students(student_id) ON DELETE CASCADE,
            exercise_id TEXT NOT NULL,
            unit_id TEXT NOT NULL,
            is_correct INTEGER NOT NULL,
            graded INTEGER NOT NULL DEFAULT 1,
            user_answer TEXT,
            response_time INTEGER,
            session_id TEXT NOT NULL,
            practice_mode TEXT NOT NULL DEFAULT 'normal'
                CHECK(practice_mode IN ('normal', 'review', 'wrong_redo', 'test', 'unlock_test')),
            attempt_number INTEGER NOT NULL DEFAULT 1,
            points_earned INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL
        );

        CREATE TRIGGER IF NOT EXISTS answer_records_append_only
        BEFORE UPDATE ON answer_records
        BEGIN
            SELECT RAISE(ABORT, 'answer_records is append-only');
        END;

        -- Per-(student, unit) rollup
        CREATE TABLE IF NOT EXISTS unit_progress (
            student_id TEXT NOT NULL REFERENCES students(student_id) ON DELETE CASCADE,
            unit_id TEXT NOT NULL REFERENCES units(unit_id),
            total_exercises INTEGER NOT NULL DEFAULT 0,
            completed_exercises INTEGER NOT NULL DEFAULT 0,
            correct_count INTEGER NOT NULL DEFAULT 0,
            incorrect_count INTEGER NOT NULL DEFAULT 0,
            total_answer_count INTEGER NOT NULL DEFAULT 0,
            completion_rate REAL NOT NULL DEFAULT 0
                CHECK(completion_rate >= 0 AND completion_rate <= 1),
            mastery_level REAL NOT NULL DEFAULT 0,
            stars INTEGER NOT NULL DEFAULT 0 CHECK(stars BETWEEN 0 AND 3),
            completed INTEGER NOT NULL DEFAULT 0,
            unlock_next INTEGER NOT NULL DEFAULT 0,
            unlocked INTEGER NOT NULL DEFAULT 0,
            total_time_spent INTEGER NOT NULL DEFAULT 0,
            average_response_time REAL NOT NULL DEFAULT 0,
            study_count INTEGER NOT NULL DEFAULT 0,
            practice_count INTEGER NOT NULL DEFAULT 0,
            completed_at TEXT,
            updated_at TEXT NOT NULL,
            PRIMARY KEY (student_id, unit_id)
        );

        -- Placement (catch-up) tests
        CREATE TABLE IF NOT EXISTS placement_tests (
            test_id TEXT PRIMARY KEY,
            student_id TEXT NOT NULL REFERENCES students(student_id) ON DELETE CASCADE,
            subject_code TEXT NOT NULL,
            start_unit_id TEXT NOT NULL,
            end_unit_id TEXT NOT NULL,
            target_unit_id TEXT NOT NULL,
            unit_ids TEXT NOT NULL,
            questions TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'open' CHECK(status IN ('open', 'completed')),
            created_at TEXT NOT NULL,
            completed_at TEXT
        );

        -- Indexes
        CREATE INDEX IF NOT EXISTS idx_units_subject ON units(subject_code, level, sort_order);
        CREATE INDEX IF NOT EXISTS idx_exercises_unit ON exercises(unit_id, position);
        CREATE INDEX IF NOT EXISTS idx_records_student_unit ON answer_records(student_id, unit_id);
        CREATE INDEX IF NOT EXISTS idx_records_student_exercise ON answer_records(student_id, exercise_id);
        CREATE INDEX IF NOT EXISTS idx_records_session ON answer_records(session_id);
        """
    )
