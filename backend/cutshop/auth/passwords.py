"""
Password hashing with bcrypt.
"""

import bcrypt

from ..errors import InvalidArgumentError

# bcrypt only considers the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72
BCRYPT_ROUNDS = 10


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """
    Raises:
        InvalidArgumentError: If the password is empty or longer than bcrypt accepts
    """
    if not password:
        raise InvalidArgumentError("Password is required")
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise InvalidArgumentError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False
