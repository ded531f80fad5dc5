"""
auth/passwords.py -- bcrypt password hashing with a configurable work factor.

Bcrypt is the right choice for low-entropy secrets (passwords) because its
cost factor makes brute-force expensive. The salt is random per call and
embedded in the output, so two hashes of one password differ but both verify.

Passwords longer than 72 bytes are truncated to bcrypt's input limit before
hashing and before verification. Current bcrypt releases reject longer input
outright; truncating on both sides keeps ordinary input from failing.

Timing equalization [C1]: the hasher precomputes a dummy hash at the same
cost. AuthService.login() calls verify_dummy() when the email is unknown so
response time does not reveal whether an account exists.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import re
import secrets

import bcrypt

from auth.errors import HashingFailure

_BCRYPT_MAX_BYTES = 72
_BCRYPT_HASH_RE = re.compile(r"^\$2[abxy]?\$\d{2}\$[./A-Za-z0-9]{53}$")


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Hash and verify passwords with bcrypt.

    Usage:
        hasher = PasswordHasher(rounds=12)
        stored = hasher.hash("longenough1")
        hasher.verify("longenough1", stored)   # True
    """

    def __init__(self, rounds: int = 12) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31.")
        self.rounds = rounds
        # Random throwaway password: the dummy hash must never match real input.
        self._dummy_hash = self.hash(secrets.token_urlsafe(16))

    def hash(self, plain: str) -> str:
        """Return a salted bcrypt hash of the given plaintext password."""
        try:
            return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=self.rounds)).decode("ascii")
        except (ValueError, TypeError) as exc:
            raise HashingFailure() from exc

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True iff plain matches hashed.

        A wrong password returns False. A stored value that is not a bcrypt
        hash at all raises HashingFailure -- that is corrupt data, not a
        failed login, and must not be reported as one.
        """
        if not hashed or not _BCRYPT_HASH_RE.match(hashed):
            raise HashingFailure()
        try:
            return bcrypt.checkpw(_encode(plain), hashed.encode("ascii"))
        except (ValueError, TypeError) as exc:
            raise HashingFailure() from exc

    def verify_dummy(self, plain: str) -> None:
        """Spend one verification's worth of CPU without checking anything."""
        self.verify(plain, self._dummy_hash)
