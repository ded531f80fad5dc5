"""
auth/tokens.py -- Signed, time-bounded bearer tokens.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       sub (user id), role, iat, exp and iss. The authority is stateless:
       validation needs only the token, the secret and the current time.
       No database or network access happens here.

  Failure kinds: validate() distinguishes Malformed, InvalidSignature and
       Expired so the gate can log which one fired. The gate collapses all
       three into one Unauthenticated before anything reaches the client.

  Clock: issue() and validate() take an optional `now`. Production callers
       omit it; tests inject fixed instants to check expiry boundaries.
       Expiry is checked here rather than by python-jose so the injected
       clock is the only time source.

  SECRET_KEY: handed in by construction (see api/main.py). Rotating it
       invalidates every previously issued token -- there is no grace period
       and no second verification key.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from jose.exceptions import JWTClaimsError
from jose.utils import base64url_decode, base64url_encode

from auth.errors import Expired, InvalidSignature, Malformed
from auth.models import Role, TokenClaims

logger = logging.getLogger("courtside.auth")

_ALGORITHM = "HS256"
_MIN_SECRET_LENGTH = 32
_REQUIRED_CLAIMS = ("sub", "role", "iat", "exp", "iss")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenAuthority:
    """Issue and validate HS256 bearer tokens.

    Usage:
        authority = TokenAuthority(secret_key, ttl=timedelta(hours=24), issuer="courtside-api")
        token = authority.issue(user.id, user.role)
        claims = authority.validate(token)   # raises a TokenError subclass on failure
    """

    def __init__(self, secret_key: str, ttl: timedelta, issuer: str) -> None:
        if len(secret_key) < _MIN_SECRET_LENGTH:
            raise ValueError(f"Token signing secret must be at least {_MIN_SECRET_LENGTH} characters.")
        if ttl <= timedelta(0):
            raise ValueError("Token TTL must be positive.")
        self._secret_key = secret_key
        self.ttl = ttl
        self.issuer = issuer

    def __repr__(self) -> str:
        return f"TokenAuthority(ttl={self.ttl!r}, issuer={self.issuer!r})"

    @property
    def ttl_seconds(self) -> int:
        return int(self.ttl.total_seconds())

    def issue(self, subject_id: str, role: Role, now: datetime | None = None) -> str:
        """Encode a signed JWT for the given subject.

        iat is now, exp is now + ttl. Both are whole epoch seconds, the
        NumericDate form every JWT decoder expects.
        """
        issued_at = int((now or _utcnow()).timestamp())
        payload = {
            "sub": subject_id,
            "role": Role(role).value,
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
            "iss": self.issuer,
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def validate(self, token: str, now: datetime | None = None) -> TokenClaims:
        """Decode and verify a token. Returns its claims or raises.

        Order matters: a string that is not a JWT at all is Malformed before
        any signature work; a well-formed token whose signature does not match
        is InvalidSignature regardless of what its payload says; only a
        genuine, well-formed token can be Expired.
        """
        try:
            jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise Malformed() from exc

        # The last base64url character carries unused low bits that a lenient
        # decoder ignores. Only the canonical encoding of the signature counts.
        signature = token.rsplit(".", 1)[-1]
        try:
            canonical = base64url_encode(base64url_decode(signature.encode("ascii"))).decode("ascii")
        except (ValueError, TypeError) as exc:
            raise InvalidSignature() from exc
        if canonical != signature:
            raise InvalidSignature()

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                issuer=self.issuer,
                options={"verify_exp": False},
            )
        except JWTClaimsError as exc:
            # Signature checked out but iss/sub/iat are wrong.
            raise Malformed() from exc
        except JWTError as exc:
            raise InvalidSignature() from exc

        claims = _parse_claims(payload)
        if (now or _utcnow()) >= claims.expires_at:
            raise Expired()
        return claims


def _parse_claims(payload: dict) -> TokenClaims:
    missing = [name for name in _REQUIRED_CLAIMS if name not in payload]
    if missing:
        raise Malformed()
    subject_id, iat, exp = payload["sub"], payload["iat"], payload["exp"]
    if not isinstance(subject_id, str) or not subject_id:
        raise Malformed()
    if not isinstance(iat, int) or not isinstance(exp, int):
        raise Malformed()
    try:
        role = Role(payload["role"])
    except ValueError as exc:
        raise Malformed() from exc
    return TokenClaims(
        subject_id=subject_id,
        role=role,
        issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
        expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        issuer=payload["iss"],
    )
