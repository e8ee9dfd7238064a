"""Commit hash generation.

The hash is a uniqueness token, not a content digest: two commits with the
same files get different hashes.
"""

from __future__ import annotations

import hashlib
import secrets
import time

DEFAULT_HASH_LENGTH = 40


def generate_commit_hash(length: int = DEFAULT_HASH_LENGTH) -> str:
    """sha256 over a nanosecond timestamp and a random token, truncated."""
    token = secrets.token_hex(32)
    data = f"{time.time_ns()}-{token}"
    return hashlib.sha256(data.encode("ascii")).hexdigest()[:length]
