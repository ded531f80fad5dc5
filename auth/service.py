"""
auth/service.py -- Registration, login and identity management.

AuthService is the thin orchestration layer over the three components it is
built from: UserStore (who exists), PasswordHasher (is the password right)
and TokenAuthority (issue a bearer token). Route handlers and the CLI call
this class; they never combine the components themselves.

Security:
  [C1] login() always runs bcrypt, whether or not the email exists. An
       unknown email is verified against the hasher's dummy hash so response
       time does not reveal which accounts exist.

  register() never accepts a role from the caller. New accounts are members;
  promotion is a separate admin action (change_role).

  Duplicate detection relies on the store's UNIQUE constraint. There is
  no get_by_email() pre-check; that would race.
"""

from __future__ import annotations

import logging
from datetime import datetime

from auth.errors import DuplicateEmail, InvalidCredentials, NotFound
from auth.models import DEFAULT_ROLE, LoginResult, Role, User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenAuthority

logger = logging.getLogger("courtside.auth")


class AuthService:
    def __init__(self, store: UserStore, hasher: PasswordHasher, authority: TokenAuthority) -> None:
        self.store = store
        self.hasher = hasher
        self.authority = authority

    # ------------------------------------------------------------------
    # Registration / login
    # ------------------------------------------------------------------

    def register(self, email: str, name: str, password: str) -> User:
        """Create a member account. Raises DuplicateEmail if the email is taken.

        No token is returned -- the caller must log in separately.
        """
        password_hash = self.hasher.hash(password)
        user = self.store.create(User(email=email, name=name, role=DEFAULT_ROLE), password_hash)
        logger.info("Registered user %s", user.id)
        return user

    def login(self, email: str, password: str, now: datetime | None = None) -> LoginResult:
        """Verify credentials and issue a bearer token.

        Raises InvalidCredentials for an unknown email and for a wrong
        password alike. Both paths cost one bcrypt verification [C1].
        """
        try:
            user = self.store.get_by_email(email)
        except NotFound:
            # Equalize timing -- do NOT return early before running bcrypt [C1]
            self.hasher.verify_dummy(password)
            raise InvalidCredentials() from None

        if not self.hasher.verify(password, user.hashed_password):
            logger.info("Rejected login for user %s", user.id)
            raise InvalidCredentials()

        token = self.authority.issue(user.id, user.role, now=now)
        logger.info("Issued token for user %s", user.id)
        return LoginResult(user=user, token=token, expires_in=self.authority.ttl_seconds)

    def ensure_admin(self, email: str, name: str, password: str) -> User | None:
        """Create an admin account if none exists with this email.

        Returns the new User, or None when the email is already registered
        (whatever its role -- an existing account is never modified here).
        Safe to call on every startup.
        """
        try:
            user = self.store.create(User(email=email, name=name, role=Role.admin), self.hasher.hash(password))
        except DuplicateEmail:
            return None
        logger.info("Bootstrapped admin user %s", user.id)
        return user

    # ------------------------------------------------------------------
    # Identity management (pass-through to the store)
    # ------------------------------------------------------------------

    def get_user(self, user_id: str) -> User:
        return self.store.get_by_id(user_id)

    def list_users(self, limit: int = 50, offset: int = 0) -> list[User]:
        return self.store.list(limit=limit, offset=offset)

    def update_profile(self, user_id: str, name: str | None = None, email: str | None = None) -> User:
        """Change display name and/or email. Raises NotFound or DuplicateEmail."""
        return self.update_user(user_id, name=name, email=email)

    def change_role(self, user_id: str, role: Role) -> User:
        return self.update_user(user_id, role=role)

    def update_user(
        self,
        user_id: str,
        name: str | None = None,
        email: str | None = None,
        role: Role | None = None,
    ) -> User:
        """Apply any mix of name, email and role changes in one store write."""
        user = self.store.get_by_id(user_id)
        if name is not None:
            user.name = name
        if email is not None:
            user.email = email
        if role is not None:
            user.role = Role(role)
        updated = self.store.update(user)
        if role is not None:
            logger.info("Changed role of user %s to %s", user_id, updated.role.value)
        return updated

    def delete_user(self, user_id: str) -> None:
        self.store.delete(user_id)
        logger.info("Deleted user %s", user_id)
