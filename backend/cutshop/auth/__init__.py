"""
Users, password hashing and session access control.
"""

from .models import User, UserRole
from .users import UserRegistry
from .dependencies import require_user, require_admin, require_super_admin

__all__ = [
    "User",
    "UserRole",
    "UserRegistry",
    "require_user",
    "require_admin",
    "require_super_admin",
]
