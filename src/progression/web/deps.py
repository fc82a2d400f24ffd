"""Request dependencies shared by the routes."""

from fastapi import Header

from progression.core.errors import NotFoundError
from progression.db.catalog_repository import get_student


async def current_student_id(x_student_id: str = Header(..., min_length=1)) -> str:
    """Resolve the authenticated student from the X-Student-Id header.

    Authentication happens upstream; here the id only has to exist.
    """
    if get_student(x_student_id) is None:
        raise NotFoundError("Student", x_student_id)
    return x_student_id
