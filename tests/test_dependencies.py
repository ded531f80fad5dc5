"""
tests/test_dependencies.py -- Unit tests for the authentication and authorization gates.

These call authenticate_bearer() and authorize() directly with a real store
and token authority -- no HTTP stack. The API-level behaviour of the same
gates is covered in test_api_routes.py.

Coverage:
  - missing / malformed header kinds
  - every token failure collapses to Unauthenticated
  - deleted user with a still-valid token -> Unauthenticated
  - success resolves the live record (role from the store, not the token)
  - exact-match role check, no hierarchy
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from auth.dependencies import authenticate_bearer, authorize
from auth.errors import Forbidden, MalformedCredential, MissingCredential, Unauthenticated
from auth.models import AuthContext, Role, TokenClaims, User
from auth.store import UserStore
from auth.tokens import TokenAuthority

HASH = "$2b$04$abcdefghijklmnopqrstuuM7fXqJ1y5r2zV2hLwW3s4n5cE6kD8aG"
T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def member(store: UserStore) -> User:
    return store.create(User(email="a@x.com", name="Ann", role=Role.member), HASH)


def _bearer(token: str) -> str:
    return f"Bearer {token}"


def _context(role: Role) -> AuthContext:
    user = User(email="a@x.com", name="Ann", role=role, id="user-1")
    claims = TokenClaims(subject_id="user-1", role=role, issued_at=T0, expires_at=T0, issuer="test")
    return AuthContext(user=user, claims=claims)


class TestAuthenticationGate:
    @pytest.mark.parametrize("header", [None, ""])
    def test_missing_credential(self, authority: TokenAuthority, store: UserStore, header) -> None:
        with pytest.raises(MissingCredential):
            authenticate_bearer(header, authority, store)

    @pytest.mark.parametrize(
        "header",
        [
            "token-without-scheme",
            "Basic dXNlcjpwYXNz",
            "bearer abc.def.ghi",  # scheme is case-sensitive
            "Bearer",
            "Bearer ",
            "Bearer abc def",
        ],
    )
    def test_malformed_credential(self, authority: TokenAuthority, store: UserStore, header: str) -> None:
        with pytest.raises(MalformedCredential):
            authenticate_bearer(header, authority, store)

    def test_valid_token_resolves_identity(self, authority: TokenAuthority, store: UserStore, member: User) -> None:
        token = authority.issue(member.id, member.role, now=T0)
        context = authenticate_bearer(_bearer(token), authority, store, now=T0 + timedelta(minutes=1))
        assert context.user == member
        assert context.claims.subject_id == member.id

    def test_garbage_token_is_unauthenticated(self, authority: TokenAuthority, store: UserStore) -> None:
        with pytest.raises(Unauthenticated):
            authenticate_bearer(_bearer("not.a.jwt"), authority, store)

    def test_expired_token_is_unauthenticated(
        self, authority: TokenAuthority, store: UserStore, member: User
    ) -> None:
        token = authority.issue(member.id, member.role, now=T0)
        with pytest.raises(Unauthenticated):
            authenticate_bearer(_bearer(token), authority, store, now=T0 + timedelta(hours=2))

    def test_forged_token_is_unauthenticated(self, authority: TokenAuthority, store: UserStore, member: User) -> None:
        forger = TokenAuthority("attacker-controlled-secret-key-32-chars!", ttl=timedelta(hours=1), issuer=authority.issuer)
        token = forger.issue(member.id, Role.admin, now=T0)
        with pytest.raises(Unauthenticated):
            authenticate_bearer(_bearer(token), authority, store, now=T0)

    def test_failure_kind_not_exposed(self, authority: TokenAuthority, store: UserStore, member: User) -> None:
        """Expired and forged tokens produce the same error code and message."""
        token = authority.issue(member.id, member.role, now=T0)
        with pytest.raises(Unauthenticated) as expired:
            authenticate_bearer(_bearer(token), authority, store, now=T0 + timedelta(hours=2))
        with pytest.raises(Unauthenticated) as garbled:
            authenticate_bearer(_bearer("x.y.z"), authority, store)
        assert (expired.value.code, str(expired.value)) == (garbled.value.code, str(garbled.value))

    def test_deleted_user_is_unauthenticated(self, authority: TokenAuthority, store: UserStore, member: User) -> None:
        token = authority.issue(member.id, member.role, now=T0)
        store.delete(member.id)
        with pytest.raises(Unauthenticated):
            authenticate_bearer(_bearer(token), authority, store, now=T0)

    def test_role_comes_from_store(self, authority: TokenAuthority, store: UserStore, member: User) -> None:
        """A member token stays a member token, but the context reflects a later promotion."""
        token = authority.issue(member.id, Role.member, now=T0)
        member.role = Role.admin
        store.update(member)
        context = authenticate_bearer(_bearer(token), authority, store, now=T0)
        assert context.claims.role is Role.member
        assert context.user.role is Role.admin

    def test_gate_does_not_write(self, authority: TokenAuthority, store: UserStore, member: User) -> None:
        token = authority.issue(member.id, member.role, now=T0)
        authenticate_bearer(_bearer(token), authority, store, now=T0)
        assert store.get_by_id(member.id).updated_at == member.updated_at


class TestAuthorizationGate:
    def test_admin_requirement_rejects_member(self) -> None:
        with pytest.raises(Forbidden):
            authorize(_context(Role.member), Role.admin)

    def test_admin_requirement_accepts_admin(self) -> None:
        context = _context(Role.admin)
        assert authorize(context, Role.admin) is context

    def test_no_role_hierarchy(self) -> None:
        """admin does not implicitly satisfy a member requirement."""
        with pytest.raises(Forbidden):
            authorize(_context(Role.admin), Role.member)

    def test_member_requirement_accepts_member(self) -> None:
        context = _context(Role.member)
        assert authorize(context, Role.member) is context
