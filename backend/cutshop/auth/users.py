"""
User registry.

Usernames are stored lower-case and looked up case-insensitively.
Passwords are stored as bcrypt hashes only.
"""

import logging
from typing import Any, Dict, List, Optional

from ..errors import InvalidArgumentError, NotFoundError, UnauthorizedError
from ..persistence.manager import PersistenceManager
from .models import User, UserRole
from .passwords import BCRYPT_ROUNDS, hash_password, verify_password

logger = logging.getLogger(__name__)


def _parse_role(role) -> UserRole:
    try:
        return UserRole(role)
    except ValueError:
        raise InvalidArgumentError("Invalid role specified")


def _to_user(data: Dict) -> User:
    return User.model_validate({k: v for k, v in data.items() if k != "password"})


class UserRegistry:
    """Users and credentials backed by SQLite."""

    def __init__(self, persistence_manager: PersistenceManager, bcrypt_rounds: int = BCRYPT_ROUNDS):
        self._persistence = persistence_manager
        self._rounds = bcrypt_rounds

    def authenticate(self, username: str, password: str) -> User:
        """
        Raises:
            UnauthorizedError: If the username is unknown or the password wrong
        """
        data = self._persistence.load_user_by_username((username or "").strip().lower())
        if data is None or not verify_password(password, data["password"]):
            logger.warning(f"Login failed for {username!r}")
            raise UnauthorizedError("Invalid credentials")
        return _to_user(data)

    def find_user(self, user_id: int) -> Optional[User]:
        data = self._persistence.load_user(user_id)
        return _to_user(data) if data else None

    def get_user(self, user_id: int) -> User:
        user = self.find_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def list_users(self) -> List[User]:
        return [_to_user(data) for data in self._persistence.load_all_users()]

    def create_user(
        self,
        username: str,
        password: str,
        email: Optional[str] = None,
        role=UserRole.ADMIN,
    ) -> User:
        """
        Raises:
            InvalidArgumentError: On blank credentials, unknown role or duplicate username
        """
        username = (username or "").strip().lower()
        if not username or not password:
            raise InvalidArgumentError("Username and password are required")
        role = _parse_role(role)
        if self._persistence.load_user_by_username(username):
            raise InvalidArgumentError("Username already exists")

        user_id = self._persistence.insert_user({
            "username": username,
            "password": hash_password(password, self._rounds),
            "email": email or None,
            "role": role.value,
        })
        logger.info(f"User created: {username} ({role.value})")
        return self.get_user(user_id)

    def update_user(self, user_id: int, changes: Dict[str, Any]) -> User:
        """
        Apply a partial update.

        Recognized keys: username, email, password, role. An empty email
        clears it; an empty password or username leaves it unchanged.
        """
        self.get_user(user_id)
        fields: Dict[str, Any] = {}

        username = changes.get("username")
        if username:
            username = username.strip().lower()
            existing = self._persistence.load_user_by_username(username)
            if existing and existing["id"] != user_id:
                raise InvalidArgumentError("Username already exists")
            fields["username"] = username
        if "email" in changes:
            fields["email"] = changes["email"] or None
        if changes.get("password"):
            fields["password"] = hash_password(changes["password"], self._rounds)
        if changes.get("role"):
            fields["role"] = _parse_role(changes["role"]).value

        self._persistence.update_user(user_id, fields)
        return self.get_user(user_id)

    def delete_user(self, user_id: int, acting_user_id: Optional[int] = None) -> None:
        """
        Raises:
            InvalidArgumentError: If a user tries to delete their own account
            NotFoundError: If the user does not exist
        """
        if acting_user_id is not None and user_id == acting_user_id:
            raise InvalidArgumentError("Cannot delete your own account")
        if not self._persistence.delete_user(user_id):
            raise NotFoundError("user", user_id)
        logger.info(f"User deleted: {user_id}")

    # First-run setup

    def setup_required(self) -> bool:
        return self._persistence.count_users() == 0

    def setup_initial_admin(self, username: str, password: str) -> User:
        """
        Create the first super admin.

        Raises:
            InvalidArgumentError: If any user already exists
        """
        if not self.setup_required():
            raise InvalidArgumentError("Setup already completed")
        return self.create_user(username, password, role=UserRole.SUPER_ADMIN)
