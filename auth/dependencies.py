"""
auth/dependencies.py -- Authentication and authorization gates.

Two layers live here:

  Plain functions -- authenticate_bearer() and authorize() implement the
  gates with no framework in sight. They take the raw Authorization header
  value and explicit collaborators, so they are unit-testable with an
  injected clock.

  FastAPI Depends() helpers -- get_auth_context(), require_role() and
  require_admin wire the plain functions to a Request. The resolved
  AuthContext is returned to the route and also attached to
  request.state.auth for middleware and exception handlers.

Ordering: authorize() consumes the AuthContext that authenticate_bearer()
produced, so the authorization gate cannot run on its own. require_role()
enforces this by depending on get_auth_context.

Failure collapse: the token authority reports Malformed, InvalidSignature
or Expired. All three become Unauthenticated here; the specific kind is only
logged. A token for a user who has since been deleted is also
Unauthenticated -- the store lookup after validation catches it.

Layer rule: no imports from api/ or core/. This module may import from
fastapi because it is part of the dependency injection system.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from fastapi import Depends, Request

from auth.errors import (
    Forbidden,
    MalformedCredential,
    MissingCredential,
    NotFound,
    TokenError,
    Unauthenticated,
)
from auth.models import AuthContext, Role
from auth.store import UserStore
from auth.tokens import TokenAuthority

logger = logging.getLogger("courtside.auth")

_SCHEME = "Bearer"


def authenticate_bearer(
    authorization: str | None,
    authority: TokenAuthority,
    store: UserStore,
    now: datetime | None = None,
) -> AuthContext:
    """Resolve an `Authorization: Bearer <token>` value to a live identity.

    Raises MissingCredential, MalformedCredential or Unauthenticated.
    Performs exactly one store read on the success path and no writes.
    """
    if not authorization:
        raise MissingCredential()

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != _SCHEME or not parts[1]:
        raise MalformedCredential()

    try:
        claims = authority.validate(parts[1], now=now)
    except TokenError as exc:
        logger.info("Rejected bearer token: %s", exc.code)
        raise Unauthenticated() from exc

    try:
        user = store.get_by_id(claims.subject_id)
    except NotFound as exc:
        logger.info("Rejected bearer token: subject %s no longer exists", claims.subject_id)
        raise Unauthenticated() from exc

    return AuthContext(user=user, claims=claims)


def authorize(context: AuthContext, required_role: Role) -> AuthContext:
    """Exact-match role check against the live user record. Raises Forbidden."""
    if context.user.role != required_role:
        logger.info("Forbidden: user %s lacks role %s", context.user.id, Role(required_role).value)
        raise Forbidden()
    return context


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------


def get_auth_context(request: Request) -> AuthContext:
    """Require authentication. Use as a FastAPI dependency:

        @router.get("/protected")
        async def route(ctx: AuthContext = Depends(get_auth_context)): ...
    """
    service = request.app.state.auth_service
    context = authenticate_bearer(
        request.headers.get("Authorization"),
        service.authority,
        service.store,
    )
    request.state.auth = context
    return context


def require_role(role: Role) -> Callable[..., AuthContext]:
    """Build a dependency that authenticates, then requires an exact role."""

    def dependency(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
        return authorize(context, role)

    return dependency


require_admin = require_role(Role.admin)
