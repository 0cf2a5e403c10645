"""
Password hashing.

PBKDF2-SHA256 with a random per-password salt, stored as "salt:hash".
The async variants push the work to the threadpool so a slow hash
never stalls the event loop.
"""

from __future__ import annotations

import hashlib
import secrets

from fastapi.concurrency import run_in_threadpool


DEFAULT_ITERATIONS = 100_000


def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    """
    Hash a password using PBKDF2-SHA256.

    Returns: salt:hash format string
    """
    salt = secrets.token_hex(32)
    hash_bytes = hashlib.pbkdf2_hmac(
        'sha256',
        password.encode('utf-8'),
        salt.encode('utf-8'),
        iterations=iterations,
    )
    return f"{salt}:{hash_bytes.hex()}"


def verify_password(password: str, password_hash: str, iterations: int = DEFAULT_ITERATIONS) -> bool:
    """Verify a password against its hash."""
    try:
        salt, stored_hash = password_hash.split(':')
        hash_bytes = hashlib.pbkdf2_hmac(
            'sha256',
            password.encode('utf-8'),
            salt.encode('utf-8'),
            iterations=iterations,
        )
        return secrets.compare_digest(hash_bytes.hex(), stored_hash)
    except (ValueError, AttributeError):
        return False


class PasswordHasher:
    """Async front for hashing with a configured iteration count."""

    def __init__(self, iterations: int = DEFAULT_ITERATIONS):
        self.iterations = iterations
        # Compared against when the e-mail is unknown, so both paths cost one hash
        self._dummy_hash = hash_password(secrets.token_hex(8), iterations)

    async def hash(self, password: str) -> str:
        return await run_in_threadpool(hash_password, password, self.iterations)

    async def verify(self, password: str, password_hash: str | None) -> bool:
        return await run_in_threadpool(
            verify_password, password, password_hash or self._dummy_hash, self.iterations
        )
