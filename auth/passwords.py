"""
auth/passwords.py -- One-way password hashing (bcrypt, direct usage).

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which current
bcrypt releases reject with an explicit error.

72-byte limit: bcrypt only ever reads the first 72 bytes of a secret. Newer
bcrypt releases raise ValueError instead of truncating silently, so both
functions truncate the UTF-8 encoding themselves. Register accepts passwords
up to 100 characters; hashing and verifying the same truncated prefix keeps
the two paths consistent.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 10
_BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a bcrypt hash of the plaintext. A fresh salt is embedded in every hash."""
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext matches the bcrypt hash.

    A malformed or empty hash returns False rather than raising, so callers
    never need a try/except around a login comparison.
    """
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        return False
