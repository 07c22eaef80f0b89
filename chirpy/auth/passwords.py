from __future__ import annotations

from argon2 import PasswordHasher, Type
from argon2 import exceptions as argon2_errors

from chirpy.auth.errors import HashingError

ALGORITHM_TAG = "$argon2id$"

# argon2-cffi defaults; parameters and salt are embedded in every hash
_pwd_hasher = PasswordHasher(type=Type.ID)


def hash_password(password: str) -> str:
    """Hash ``password`` with Argon2id and a fresh random salt."""
    try:
        return _pwd_hasher.hash(password)
    except argon2_errors.HashingError as exc:
        raise HashingError("failed to hash password with argon2id") from exc


def verify_password(password: str, password_hash: str) -> bool:
    """Check ``password`` against an encoded Argon2id hash.

    A wrong password returns False. Only a malformed hash (bad encoding or a
    non-argon2id tag) raises HashingError.
    """
    if not isinstance(password_hash, str) or not password_hash.startswith(ALGORITHM_TAG):
        raise HashingError("stored hash is not an argon2id hash")
    try:
        return _pwd_hasher.verify(password_hash, password)
    except argon2_errors.VerifyMismatchError:
        return False
    except (argon2_errors.InvalidHashError, argon2_errors.VerificationError) as exc:
        raise HashingError("failed to check password with argon2id") from exc
