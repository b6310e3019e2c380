"""Credential helpers for VocaboPlay: bcrypt hashing and input checks."""

from __future__ import annotations

import re

import bcrypt

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def hash_password(plaintext: str) -> str:
    """Return a bcrypt hash for the provided password."""
    if not plaintext:
        raise ValueError("Password must be provided.")

    hashed = bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plaintext: str, password_hash: str) -> bool:
    """Verify that the supplied plaintext password matches a stored hash."""
    if not password_hash or not plaintext:
        return False

    try:
        return bcrypt.checkpw(
            plaintext.encode("utf-8"),
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # Malformed hashes are treated as a failed check.
        return False


def is_valid_email(email: str) -> bool:
    return bool(email) and _EMAIL_PATTERN.match(email) is not None


def is_strong_enough(plaintext: str, min_length: int) -> bool:
    return len(plaintext or "") >= min_length
