"""Password hashing for portal accounts.

Argon2id hashes are self-contained (algorithm parameters and salt are encoded
in the hash string), so verification needs nothing but the stored value.
"""
from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

_password_hasher = PasswordHasher(
    time_cost=2,
    memory_cost=19456,
    parallelism=1,
    hash_len=32,
    salt_len=16,
)


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    Example:
        >>> hash_password("my-secure-password").startswith("$argon2id$")
        True
    """
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Return True if ``password`` matches ``password_hash``.

    A malformed stored hash counts as a mismatch rather than an error.
    """
    try:
        return _password_hasher.verify(password_hash, password)
    except VerifyMismatchError:
        return False
    except (VerificationError, InvalidHashError):
        # unparseable or corrupted stored hash
        return False
