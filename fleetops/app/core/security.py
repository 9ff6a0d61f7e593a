"""
Password hashing.

Argon2id via argon2-cffi. Hashes are self-describing, so parameters can
be raised later without invalidating stored passwords.
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

_hasher = PasswordHasher()


def get_password_hash(password: str) -> str:
    """Hash a plain-text password."""
    return _hasher.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if the password matches the stored hash."""
    try:
        return _hasher.verify(hashed_password, plain_password)
    except (InvalidHash, VerificationError, VerifyMismatchError):
        return False
