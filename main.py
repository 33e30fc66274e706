#!/usr/bin/env python3
"""
Overseer -- account administration from the command line.

Usage:
  python main.py bootstrap
  python main.py register alice "Alice Liddell"
  python main.py register alice "Alice Liddell" --password 'Sup3rSecret!'
  python main.py list --page 2 --page-size 20
  python main.py remove alice

Passwords are prompted for (without echo) unless --password is given.

Environment variables:
  DATABASE_URL   SQLAlchemy URL of the account database.
  See core/config.py for the full list.
"""

import argparse
import getpass
import logging
import sys

from auth.errors import AuthError
from auth.models import DEFAULT_PERMISSION_LEVEL, AccountCandidate
from auth.service import AccountService
from auth.store import AccountStore
from auth.tokens import TokenService
from auth.validation import PasswordPolicy
from core.config import get_settings


def _build_service() -> AccountService:
    settings = get_settings()
    store = AccountStore(settings.database_url)
    return AccountService(store, TokenService(settings), PasswordPolicy.from_settings(settings))


def _cmd_bootstrap(service: AccountService, args: argparse.Namespace) -> None:
    service.bootstrap_default_admin()
    print("  Default administrator is in place.")


def _cmd_register(service: AccountService, args: argparse.Namespace) -> None:
    password = args.password or getpass.getpass(f"Password for '{args.login}': ")
    account = service.register(
        AccountCandidate(
            login=args.login,
            username=args.username,
            password=password,
            permission_level=args.permission,
        )
    )
    print(f"  Registered '{account.login}' (id={account.id}, permission={account.permission_level}).")


def _cmd_list(service: AccountService, args: argparse.Namespace) -> None:
    accounts = service.list_accounts(args.page, args.page_size)
    if not accounts:
        print("  No accounts on this page.")
        return
    for a in accounts:
        marker = "*" if a.is_elevated else " "
        print(f"  {marker} {a.id:>5}  {a.login:<24} {a.username:<32} {a.permission_level:>4}  {a.created_at}")


def _cmd_remove(service: AccountService, args: argparse.Namespace) -> None:
    service.remove(service.get(args.login))
    print(f"  Removed '{args.login}'.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="overseer",
        description="Overseer -- account administration.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("bootstrap", help="Create or reconcile the default administrator.").set_defaults(
        func=_cmd_bootstrap
    )

    reg = sub.add_parser("register", help="Register an ordinary account.")
    reg.add_argument("login")
    reg.add_argument("username")
    reg.add_argument("--password", help="Password (prompted for when omitted).")
    reg.add_argument("--permission", type=int, default=DEFAULT_PERMISSION_LEVEL, metavar="LEVEL")
    reg.set_defaults(func=_cmd_register)

    lst = sub.add_parser("list", help="List live accounts.")
    lst.add_argument("--page", type=int, default=1)
    lst.add_argument("--page-size", type=int, default=50)
    lst.set_defaults(func=_cmd_list)

    rm = sub.add_parser("remove", help="Soft-delete an ordinary account.")
    rm.add_argument("login")
    rm.set_defaults(func=_cmd_remove)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)-5s %(name)s %(message)s")
    args = _build_parser().parse_args(argv)
    service = _build_service()
    try:
        args.func(service, args)
    except AuthError as exc:
        print(f"  [!] {exc.kind.value}: {exc.message}", file=sys.stderr)
        return 1
    finally:
        service.store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
