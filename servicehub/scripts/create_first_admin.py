"""
Create the first administrator account.

Usage:
    python -m servicehub.scripts.create_first_admin --email admin@servicehub.io --username admin

The password is read from --password or prompted for. Nothing is created
when an admin already exists.
"""

from __future__ import annotations

import argparse
import getpass
import logging

from servicehub.core.db import SessionLocal
from servicehub.core.errors import DuplicateError
from servicehub.services.auth_seed import create_director_admin
from servicehub.services.identity import password_errors


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the first director-level admin")
    parser.add_argument("--email", required=True)
    parser.add_argument("--username", default="admin")
    parser.add_argument("--password", default=None, help="Prompted for when omitted")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = _parse_args(argv)
    password = args.password or getpass.getpass("Admin password: ")
    errors = password_errors(password)
    if errors:
        for err in errors:
            print(err)
        return 1
    with SessionLocal() as db:
        try:
            admin = create_director_admin(db, username=args.username, email=args.email, password=password)
        except DuplicateError as exc:
            print(exc.detail)
            return 1
    if admin is None:
        print("Admin user already exists; nothing created.")
        return 0
    print(f"Created admin {admin.email} (clearance: {admin.clearance_level})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
