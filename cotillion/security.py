"""Credential primitives: code hashing, constant-time comparison, tokens."""

import secrets
from typing import Optional

import bcrypt

from cotillion.config import BCRYPT_ROUNDS

# bcrypt ignores (or rejects) input past this many bytes
MAX_CODE_BYTES = 72


def hash_code(code: str) -> str:
    """Return a bcrypt hash of a secret code."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(code.encode("utf-8"), salt).decode("ascii")


def verify_code(code: str, code_hash: str) -> bool:
    """Check a secret code against its stored hash."""
    try:
        return bcrypt.checkpw(code.encode("utf-8"), code_hash.encode("ascii"))
    except ValueError:
        # Malformed stored hash or oversized input
        return False


def tokens_match(candidate: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time string comparison; a missing side never matches."""
    if not candidate or not expected:
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def new_token() -> str:
    return secrets.token_urlsafe(32)
