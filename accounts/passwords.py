"""
accounts/passwords.py -- One-way password hashing and verification.

Passwords: bcrypt used directly (no passlib wrapper). Every hash carries its
own random salt, so hashing the same plaintext twice yields two different
strings and hashes can never be compared with ==. verify_password() is the
only valid way to check a password; it delegates to bcrypt.checkpw, which
re-derives the hash and compares in constant time.

The work factor is the named constant BCRYPT_ROUNDS. It is part of every
stored hash, so raising it later only affects newly written hashes; existing
ones keep verifying at the cost they were created with.

bcrypt only accepts MAX_PASSWORD_BYTES of input, counted in UTF-8 bytes,
not characters. check_password() enforces that limit; the API models and the
CLI call it before anything reaches hash_password().
"""

from __future__ import annotations

import bcrypt

BCRYPT_ROUNDS = 10
MAX_PASSWORD_BYTES = 72


def check_password(plain: str) -> str:
    """Raise ValueError unless plain is non-empty and fits in bcrypt's input limit."""
    if not plain:
        raise ValueError("Password must not be empty")
    if len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return plain


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the plaintext password."""
    check_password(plain)
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """Return True if the plaintext matches the bcrypt hash.

    A missing or malformed stored hash (e.g. a legacy plaintext value) is a
    mismatch, not an error.
    """
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at import so an unknown-username login runs a full bcrypt
# comparison at the same cost as a wrong-password login.
DUMMY_HASH: str = hash_password("accounts_timing_dummy")
