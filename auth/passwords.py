"""
auth/passwords.py -- Salted one-way password hashing (bcrypt).

Security design decisions:
  bcrypt is the right choice for low-entropy secrets (passwords): its work
  factor makes brute force expensive, and gensalt() draws a fresh random salt
  for every hash, so two users with the same password get different hashes.
  The salt and cost are embedded in the output string -- nothing to store
  alongside it.

  bcrypt.checkpw() compares digests in constant time, so verification does
  not leak how much of the input matched.

  Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
  wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
  rejects with an explicit error.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import bcrypt

# bcrypt only reads the first 72 bytes of its input; newer releases refuse
# longer inputs outright. The service layer rejects such passwords up front.
MAX_PASSWORD_BYTES = 72

DEFAULT_ROUNDS = 10


class PasswordHasher:
    """bcrypt hashing with a configurable work factor.

    Usage:
        hasher = PasswordHasher(rounds=12)
        stored = hasher.hash("s3cr3t")
        hasher.verify("s3cr3t", stored)   # True
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31.")
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password."""
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext password reproduces the bcrypt hash.

        A malformed hash or an over-long password is a mismatch, not an error.
        """
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False
