"""
auth/models.py -- Domain types for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; the store, token authority and gates do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Closed set of membership roles.

    Comparison is exact -- there is no hierarchy, so admin does not satisfy a
    member requirement. Unknown strings raise ValueError via Role(value).
    """

    member = "member"
    admin = "admin"
    guest = "guest"


DEFAULT_ROLE = Role.member


@dataclass
class User:
    """A registered member of the club.

    id, created_at and updated_at are None/"" until the store writes the
    record. hashed_password stays inside the auth package: it is excluded from
    repr() so it never lands in a log line, and the API response models do
    not carry it.
    """

    email: str  # unique, case-sensitive as stored
    name: str
    role: Role = DEFAULT_ROLE
    id: str | None = None  # UUID4, assigned by the store
    hashed_password: str = field(default="", repr=False)
    created_at: str = ""  # ISO 8601 UTC, set by store on insert
    updated_at: str = ""  # ISO 8601 UTC, refreshed on every update


@dataclass(frozen=True)
class TokenClaims:
    """The facts a validated bearer token asserts. Never persisted."""

    subject_id: str
    role: Role
    issued_at: datetime
    expires_at: datetime
    issuer: str


@dataclass(frozen=True)
class AuthContext:
    """Request-scoped result of the authentication gate.

    user is the live record re-fetched from the store, so its role is the one
    to trust. claims.role is only what the token said at issue time.
    """

    user: User
    claims: TokenClaims


@dataclass(frozen=True)
class LoginResult:
    user: User
    token: str
    expires_in: int  # seconds
