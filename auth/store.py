"""
auth/store.py -- SQLAlchemy Core persistence layer for user identities.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route and service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is a UNIQUE constraint, not a read-then-write check in
  code. Two concurrent registrations with the same email race at the database;
  the loser gets IntegrityError, which create() turns into DuplicateEmail.

  Role is validated on the way in (create/update) and on the way out
  (_row_to_user). An unknown role string in either direction is a ValueError,
  never a silently trusted value.

DB path: courtside.db at the repository root (see core.config.Settings).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateEmail, NotFound
from auth.models import Role, User

logger = logging.getLogger("courtside.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),  # UUID4
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("name", String(255), nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.member.value),
    Column("created_at", String(32), nullable=False, index=True),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(moment: datetime) -> str:
    # Fixed-width microseconds keep lexical order equal to chronological order.
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _require_hash(password_hash: str) -> str:
    if not password_hash:
        raise ValueError("password_hash must not be empty.")
    return password_hash


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///courtside.db")
        user = store.create(User(email="a@x.com", name="Ann"), hasher.hash("secret"))
        same = store.get_by_email("a@x.com")
        store.close()

    clock is injectable so tests can control created_at/updated_at ordering.
    """

    def __init__(self, db_url: str, clock: Callable[[], datetime] | None = None) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        self._clock = clock or _utcnow
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, user: User, password_hash: str) -> User:
        """Insert a new user and return it with id and timestamps assigned.

        Raises DuplicateEmail if the email is already taken, ValueError if the
        role is not a recognised Role or the hash is empty.
        """
        role = Role(user.role)
        now = _iso(self._clock())
        values = {
            "id": str(uuid.uuid4()),
            "email": user.email,
            "password_hash": _require_hash(password_hash),
            "name": user.name,
            "role": role.value,
            "created_at": now,
            "updated_at": now,
        }
        try:
            with self.engine.connect() as conn:
                conn.execute(_users.insert().values(**values))
                conn.commit()
        except IntegrityError as exc:
            # Which constraint fired stays in the log, never in the error.
            logger.debug("User insert rejected by constraint: %s", exc.orig)
            raise DuplicateEmail() from exc
        return User(
            id=values["id"],
            email=user.email,
            name=user.name,
            role=role,
            hashed_password=password_hash,
            created_at=now,
            updated_at=now,
        )

    def update(self, user: User) -> User:
        """Persist email, name, role and password hash for an existing user.

        updated_at is refreshed; created_at is never touched. Raises NotFound
        if user.id does not exist and DuplicateEmail if the new email belongs
        to someone else.
        """
        role = Role(user.role)
        now = _iso(self._clock())
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.update()
                    .where(_users.c.id == user.id)
                    .values(
                        email=user.email,
                        name=user.name,
                        role=role.value,
                        password_hash=_require_hash(user.hashed_password),
                        updated_at=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            logger.debug("User update rejected by constraint: %s", exc.orig)
            raise DuplicateEmail() from exc
        if result.rowcount == 0:
            raise NotFound()
        return self.get_by_id(user.id)

    def delete(self, user_id: str) -> None:
        """Permanently delete a user record. Raises NotFound if absent.

        Tokens already issued to the user stay cryptographically valid until
        they expire; the authentication gate rejects them because the store
        lookup that follows validation fails.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        if result.rowcount == 0:
            raise NotFound()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: str) -> User:
        """Look up a user by primary key. Raises NotFound if absent."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        if row is None:
            raise NotFound()
        return _row_to_user(row)

    def get_by_email(self, email: str) -> User:
        """Look up a user by exact email (case-sensitive). Raises NotFound if absent."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        if row is None:
            raise NotFound()
        return _row_to_user(row)

    def list(self, limit: int = 50, offset: int = 0) -> list[User]:
        """Return a page of users, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _users.select().order_by(_users.c.created_at.desc()).limit(limit).offset(offset)
            ).fetchall()
        return [_row_to_user(r) for r in rows]

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_users)).scalar() or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        role=Role(row.role),
        hashed_password=row.password_hash,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
