"""Create (or with --drop, recreate) all tables for the configured database."""

from __future__ import annotations

import argparse

from parley.core.settings import settings
from parley.db.session import create_tables, drop_tables


def main() -> None:
    parser = argparse.ArgumentParser(description="Initialize the configured database")
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop all tables before creating them.",
    )
    args = parser.parse_args()

    if args.drop:
        drop_tables()
        print("[init_db] dropped all tables")
    create_tables()
    print(f"[init_db] database ready at {settings.database_url}")


if __name__ == "__main__":
    main()
