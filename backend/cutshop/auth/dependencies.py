"""
Session-based access control for routes.

The session cookie carries only the user ID. Every request re-reads the
user from storage, so role changes and deletions apply immediately.
"""

from fastapi import Depends, Request

from ..errors import ForbiddenError, UnauthorizedError
from .models import User

SESSION_USER_KEY = "user_id"


def start_session(request: Request, user: User) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id


def end_session(request: Request) -> None:
    request.session.clear()


def require_user(request: Request) -> User:
    """
    Raises:
        UnauthorizedError: If there is no session or its user no longer exists
    """
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        raise UnauthorizedError()
    user = request.app.state.user_registry.find_user(user_id)
    if user is None:
        request.session.clear()
        raise UnauthorizedError("User not found")
    return user


def require_admin(user: User = Depends(require_user)) -> User:
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user


def require_super_admin(user: User = Depends(require_user)) -> User:
    if not user.is_super_admin:
        raise ForbiddenError("Super admin access required")
    return user
