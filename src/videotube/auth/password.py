"""Password hashing (argon2id) and the password policy."""

from __future__ import annotations

import argon2
from argon2.exceptions import InvalidHashError, VerificationError

from videotube.config import get_settings

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=64 * 1024,
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,
)

# (predicate, complaint) pairs checked after the length bounds.
_CHARACTER_RULES = (
    (str.isupper, "Password must contain at least one uppercase letter"),
    (str.islower, "Password must contain at least one lowercase letter"),
    (str.isdigit, "Password must contain at least one digit"),
)


class PasswordStrengthError(ValueError):
    """Password rejected by the policy; the message names the failed rule."""


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """True on match. Mismatches and unreadable hashes both yield False."""
    try:
        return _hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def check_needs_rehash(password_hash: str) -> bool:
    return _hasher.check_needs_rehash(password_hash)


def validate_password_strength(password: str) -> None:
    """
    Enforce the configured length bounds plus mixed case and a digit.

    Raises PasswordStrengthError naming the first rule that fails.
    """
    settings = get_settings()
    if not password or password.isspace():
        msg = "Password cannot be empty"
        raise PasswordStrengthError(msg)

    if not settings.password_min_length <= len(password) <= settings.password_max_length:
        msg = (
            f"Password must be between {settings.password_min_length} "
            f"and {settings.password_max_length} characters"
        )
        raise PasswordStrengthError(msg)

    for predicate, complaint in _CHARACTER_RULES:
        if not any(predicate(c) for c in password):
            raise PasswordStrengthError(complaint)
