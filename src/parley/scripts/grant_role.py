# src/parley/scripts/grant_role.py
"""Promote or demote a user.

Usage:
    python -m parley.scripts.grant_role alice moderator
"""

from __future__ import annotations

import argparse
import sys

from sqlalchemy.orm import Session

from parley.core.constants import Role
from parley.db.session import SessionLocal
from parley.models import User


def grant_role(db: Session, username: str, role: Role) -> User:
    """Set `username`'s role and return the user.

    Raises:
        LookupError: If no user has that username.
    """
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        raise LookupError(f"User {username!r} not found")
    user.role = role.value
    db.commit()
    return user


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Change a user's role")
    parser.add_argument("username", help="Account to update")
    parser.add_argument(
        "role",
        choices=[role.value for role in Role],
        help="New role for the account",
    )
    args = parser.parse_args(argv)

    with SessionLocal() as db:
        try:
            user = grant_role(db, args.username, Role(args.role))
        except LookupError as exc:
            print(f"[grant_role] ERROR: {exc}", file=sys.stderr)
            return 1
        print(f"[grant_role] {user.username} is now {user.role}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
