"""Returnflow database management CLI.

Creates and drops the schema for the refunds domain using the
setup_db/drop_db utilities.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_database():
    """Create the refunds database schema."""
    from refunds.domain import refunds
    from refunds.utils.db import setup_db

    print("Initializing refunds domain...")
    refunds.init()
    print("Creating refunds database schema...")
    setup_db(refunds)
    print("Done.")


def drop_database():
    """Drop the refunds database schema."""
    from refunds.domain import refunds
    from refunds.utils.db import drop_db

    print("Initializing refunds domain...")
    refunds.init()
    print("Dropping refunds database schema...")
    drop_db(refunds)
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Returnflow database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
