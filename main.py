#!/usr/bin/env python3
"""
Account service -- administrative command line.

Usage:
  python main.py create-user alice --email alice@example.com --first-name Alice --last-name Smith
  python main.py verify alice bob
  python main.py grant-admin 1
  python main.py revoke-admin 1
  python main.py check-admin 1
  python main.py login alice
  python main.py delete --id 3
  python main.py delete --username carol

Passwords are always prompted for (getpass), never taken from argv.

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the account database (or pass --database-url).
  DEBUG         Set to true to fall back to a local development SQLite file.
"""

import argparse
import logging
from getpass import getpass
from typing import Optional

from accounts.errors import StorageError, UniquenessViolation
from accounts.models import AdminOutcome, LoginStatus, NewUser
from accounts.passwords import check_password
from accounts.store import CredentialStore, build_engine
from accounts.workflow import AuthWorkflow
from core.config import get_settings

logger = logging.getLogger("accounts.cli")

_LOGIN_MESSAGES = {
    LoginStatus.SUCCESS: "Login successful",
    LoginStatus.USER_NOT_FOUND: "User not found",
    LoginStatus.INVALID_PASSWORD: "Incorrect password",
    LoginStatus.NOT_VERIFIED: "Account not verified",
}


def _read_new_password() -> str:
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("  [!] Passwords do not match.")
    try:
        return check_password(pw1)
    except ValueError as exc:
        raise SystemExit(f"  [!] {exc}.") from exc


def _cmd_create_user(store: CredentialStore, args: argparse.Namespace) -> int:
    new_user = NewUser(
        username=args.username,
        email=args.email,
        first_name=args.first_name,
        last_name_1=args.last_name,
        last_name_2=args.second_last_name,
        password=_read_new_password(),
    )
    try:
        store.create(new_user)
    except UniquenessViolation as exc:
        print(f"  [!] {exc}")
        return 1
    print(f"  Created {args.username} (unverified).")
    return 0


def _cmd_verify(store: CredentialStore, args: argparse.Namespace) -> int:
    count = store.bulk_verify(args.usernames)
    print(f"  Verified {count} of {len(set(args.usernames))} account(s).")
    return 0


def _cmd_delete(store: CredentialStore, args: argparse.Namespace) -> int:
    if args.id is not None:
        count = store.delete_by_id(args.id)
    else:
        count = store.delete_by_username(args.username)
    print(f"  Deleted {count} account(s).")
    return 0


def _cmd_grant_admin(store: CredentialStore, args: argparse.Namespace) -> int:
    if store.grant_admin(args.user_id):
        print(f"  User {args.user_id} is now an administrator.")
        return 0
    print(f"  [!] User {args.user_id} does not exist or is already an administrator.")
    return 1


def _cmd_revoke_admin(store: CredentialStore, args: argparse.Namespace) -> int:
    if store.revoke_admin(args.user_id):
        print(f"  User {args.user_id} is no longer an administrator.")
        return 0
    print(f"  [!] User {args.user_id} was not an administrator.")
    return 1


def _cmd_check_admin(store: CredentialStore, args: argparse.Namespace) -> int:
    outcome = AuthWorkflow(store).check_admin_role(args.user_id)
    label = "administrator" if outcome is AdminOutcome.IS_ADMIN else "regular user"
    print(f"  User {args.user_id}: {label}")
    return 0


def _cmd_login(store: CredentialStore, args: argparse.Namespace) -> int:
    outcome = AuthWorkflow(store).login(args.username, getpass("Password: "))
    message = _LOGIN_MESSAGES[outcome.status]
    if outcome.ok:
        print(f"  {message} (user id {outcome.user_id}).")
        return 0
    print(f"  [!] {message}.")
    return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="accounts",
        description="Administer user accounts: registration, verification, admin roles.",
    )
    parser.add_argument(
        "--database-url",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (default: DATABASE_URL from the environment)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Register a new, unverified account")
    create.add_argument("username")
    create.add_argument("--email", required=True)
    create.add_argument("--first-name", required=True)
    create.add_argument("--last-name", required=True)
    create.add_argument("--second-last-name", default=None)
    create.set_defaults(handler=_cmd_create_user)

    verify = sub.add_parser("verify", help="Mark one or more accounts as verified")
    verify.add_argument("usernames", nargs="+", metavar="USERNAME")
    verify.set_defaults(handler=_cmd_verify)

    delete = sub.add_parser("delete", help="Delete an account by id or username")
    target = delete.add_mutually_exclusive_group(required=True)
    target.add_argument("--id", type=int)
    target.add_argument("--username")
    delete.set_defaults(handler=_cmd_delete)

    for name, handler, help_text in (
        ("grant-admin", _cmd_grant_admin, "Add a user to the administrator list"),
        ("revoke-admin", _cmd_revoke_admin, "Remove a user from the administrator list"),
        ("check-admin", _cmd_check_admin, "Report whether a user is an administrator"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("user_id", type=int)
        cmd.set_defaults(handler=handler)

    login = sub.add_parser("login", help="Check a username/password pair")
    login.add_argument("username")
    login.set_defaults(handler=_cmd_login)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    db_url = args.database_url or get_settings().database_url
    logging.basicConfig(level=logging.WARNING, format="%(levelname)-5s %(name)s %(message)s")

    try:
        store = CredentialStore(build_engine(db_url))
    except StorageError as exc:
        print(f"  [!] {exc}")
        return 2
    try:
        return args.handler(store, args)
    except StorageError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"  [!] {exc}")
        return 2
    finally:
        store.close()


if __name__ == "__main__":
    raise SystemExit(main())
