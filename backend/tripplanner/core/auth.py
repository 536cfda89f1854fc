"""
Identity of the acting user.
Authentication happens upstream (gateway / session layer); by the time a
request reaches this service the user id is carried in the X-User-Id header.
"""

from typing import Optional
from fastapi import Header

from tripplanner.core.errors import UnauthorizedError


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """FastAPI dependency returning the authenticated user's id."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise UnauthorizedError("You must be logged in to access this resource.")
    return user_id
