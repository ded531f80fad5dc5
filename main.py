#!/usr/bin/env python3
"""
Courtside -- operator command line.

Usage:
  python main.py serve [--host 127.0.0.1] [--port 8000] [--reload]
  python main.py create-admin --email admin@club.example --name "Club Admin"
  python main.py list-users [--limit 20] [--offset 0]

create-admin prompts for the password unless --password is given. Prefer the
prompt: a password on the command line ends up in shell history.

Environment variables (see core/config.py for the full list):
  SECRET_KEY      Token signing secret, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL    SQLAlchemy URL. Default: sqlite file courtside.db next to this script.
  BCRYPT_ROUNDS   Password hashing cost factor (4-31, default 12).
"""

import argparse
import getpass
from typing import Optional

from auth.errors import DuplicateEmail
from auth.models import Role, User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from core.config import get_settings

_MIN_PASSWORD_LENGTH = 8


def _read_password(given: Optional[str]) -> Optional[str]:
    """Return the password from the flag or an interactive prompt, or None if rejected."""
    if given is not None:
        password = given
    else:
        password = getpass.getpass("Password: ")
        if password != getpass.getpass("Repeat password: "):
            print("  [!] Passwords do not match.")
            return None
    if len(password) < _MIN_PASSWORD_LENGTH:
        print(f"  [!] Password must be at least {_MIN_PASSWORD_LENGTH} characters.")
        return None
    return password


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _cmd_create_admin(args: argparse.Namespace) -> int:
    password = _read_password(args.password)
    if password is None:
        return 1

    settings = get_settings()
    store = UserStore(args.database_url or settings.database_url)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    try:
        user = store.create(User(email=args.email, name=args.name, role=Role.admin), hasher.hash(password))
    except DuplicateEmail:
        print(f"  [!] A user with email {args.email} already exists.")
        return 1
    finally:
        store.close()

    print(f"  Created admin {user.email} (id {user.id}).")
    return 0


def _cmd_list_users(args: argparse.Namespace) -> int:
    store = UserStore(args.database_url or get_settings().database_url)
    try:
        users = store.list(limit=args.limit, offset=args.offset)
    finally:
        store.close()

    if not users:
        print("  No users.")
        return 0
    for user in users:
        print(f"  {user.created_at[:19]}  {user.role.value:<7}  {user.email:<40}  {user.name}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="courtside",
        description="Membership backend: run the API and manage accounts.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  python main.py create-admin --email admin@club.example --name "Club Admin"
  DATABASE_URL=sqlite:///other.db python main.py list-users --limit 5
        """,
    )
    parser.add_argument(
        "--database-url",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (default: DATABASE_URL from the environment)",
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development)")
    serve.set_defaults(func=_cmd_serve)

    create_admin = sub.add_parser("create-admin", help="Create an account with the admin role")
    create_admin.add_argument("--email", required=True)
    create_admin.add_argument("--name", required=True)
    create_admin.add_argument(
        "--password",
        default=None,
        help="Account password (omit to be prompted -- recommended)",
    )
    create_admin.set_defaults(func=_cmd_create_admin)

    list_users = sub.add_parser("list-users", help="Print users, newest first")
    list_users.add_argument("--limit", type=int, default=50)
    list_users.add_argument("--offset", type=int, default=0)
    list_users.set_defaults(func=_cmd_list_users)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
