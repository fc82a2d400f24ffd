"""Practice session management for the Web API.

Holds the in-process PracticeSession objects (attempt state per
exercise). The answer log in SQLite is authoritative; attempt state is
not shared between sessions.
"""

from __future__ import annotations

import asyncio
import uuid

import structlog

from progression.core.errors import NotFoundError
from progression.core.models import SessionContext
from progression.core.practice import PracticeSession

logger = structlog.get_logger(__name__)


class PracticeSessionManager:
    """Manages active practice sessions keyed by session id."""

    def __init__(self):
        self._sessions: dict[str, PracticeSession] = {}
        self._lock = asyncio.Lock()

    async def create_session(self, student_id: str, practice_mode: str = "normal") -> PracticeSession:
        """Open a new practice session for a student."""
        context = SessionContext(
            session_id=str(uuid.uuid4()),
            student_id=student_id,
            practice_mode=practice_mode,
        )
        session = PracticeSession(context=context)

        async with self._lock:
            self._sessions[context.session_id] = session

        logger.info(
            "practice_session_created",
            session_id=context.session_id,
            student_id=student_id,
            practice_mode=practice_mode,
        )
        return session

    async def get_session(self, session_id: str, student_id: str) -> PracticeSession:
        """Session owned by the student.

        Raises:
            NotFoundError: Unknown session or owned by another student
        """
        async with self._lock:
            session = self._sessions.get(session_id)
        if session is None or session.student_id != student_id:
            raise NotFoundError("Session", session_id)
        return session

    async def end_session(self, session_id: str, student_id: str) -> None:
        """Drop a session and its attempt state.

        Raises:
            NotFoundError: Unknown session or owned by another student
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.student_id != student_id:
                raise NotFoundError("Session", session_id)
            del self._sessions[session_id]

        logger.info("practice_session_ended", session_id=session_id)

    async def get_session_count(self) -> int:
        """Get count of active sessions."""
        async with self._lock:
            return len(self._sessions)


# Global session manager instance
_session_manager: PracticeSessionManager | None = None


def get_session_manager() -> PracticeSessionManager:
    """Get the global session manager instance."""
    global _session_manager
    if _session_manager is None:
        _session_manager = PracticeSessionManager()
    return _session_manager


def reset_session_manager() -> None:
    """Reset the session manager (for testing)."""
    global _session_manager
    _session_manager = None
