"""
auth/passwords.py -- Credential verifier (bcrypt, direct usage).

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

The cost factor comes from Settings.bcrypt_rounds (10 by default). Hashing is
CPU-bound; route handlers that call it are plain `def` functions so FastAPI
runs them in its threadpool instead of on the event loop.
"""

from __future__ import annotations

import bcrypt


class CredentialVerifier:
    """Salted, cost-factored password hashing and comparison."""

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password.

        Raises ValueError for passwords longer than 72 bytes on bcrypt releases
        that reject rather than truncate.
        """
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext password matches the bcrypt hash.

        checkpw compares in constant time. A malformed stored hash counts as
        a mismatch.
        """
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False
