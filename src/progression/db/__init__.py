"""Database module for SQLite persistence.

Provides:
- Connection management and write transactions
- Read-only catalog access (students, units, exercises)
- The append-only answer log
- Per-unit progress rows
- Placement test definitions
"""

from progression.db.database import get_db, init_db, transaction

__all__ = ["get_db", "init_db", "transaction"]
