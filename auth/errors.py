"""
auth/errors.py -- Typed failures raised by the auth package.

Every failure carries a stable machine-readable ``code`` and a
generic ``message``. The API layer maps each class to an HTTP status in one
exception handler (api/main.py); nothing in auth/ knows about HTTP.

Security-relevant kinds are low-information: InvalidCredentials
does not say whether the account exists, and Unauthenticated does not say
whether a token was expired, forged or garbled. The TokenError subclasses
keep that distinction internally so the gate can log it.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every failure the auth package raises."""

    code = "auth_error"
    message = "Authentication failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class HashingFailure(AuthError):
    """Unrecoverable password-hashing error. Never carries the plaintext."""

    code = "internal_error"
    message = "An unexpected error occurred."


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    message = "Invalid email or password."


class DuplicateEmail(AuthError):
    code = "duplicate_email"
    message = "Email already registered."


class MissingCredential(AuthError):
    code = "missing_credential"
    message = "Authorization header required."


class MalformedCredential(AuthError):
    code = "malformed_credential"
    message = "Invalid authorization format."


class Unauthenticated(AuthError):
    code = "unauthenticated"
    message = "Invalid token."


class Forbidden(AuthError):
    code = "forbidden"
    message = "Insufficient permissions."


class NotFound(AuthError):
    """Store-level miss. Surfaced as Unauthenticated during authentication."""

    code = "not_found"
    message = "User not found."


# ---------------------------------------------------------------------------
# Token validation -- distinguished internally, collapsed at the gate
# ---------------------------------------------------------------------------


class TokenError(AuthError):
    code = "invalid_token"
    message = "Invalid token."


class InvalidSignature(TokenError):
    code = "invalid_signature"


class Expired(TokenError):
    code = "token_expired"


class Malformed(TokenError):
    code = "malformed_token"
