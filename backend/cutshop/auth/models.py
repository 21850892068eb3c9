"""
User and role models.

Password hashes never leave the registry; API responses use User.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from ..models import ApiModel


class UserRole(str, Enum):
    """Privilege levels, lowest first."""

    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class User(ApiModel):
    id: int
    username: str
    email: Optional[str] = None
    role: UserRole = UserRole.USER
    created_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.SUPER_ADMIN)

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN
