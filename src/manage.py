"""Storefront management CLI.

Database schema management plus the periodic maintenance sweeps, suitable
for cron.

Usage:
    python src/manage.py setup-db                  # Create all tables
    python src/manage.py drop-db                   # Drop all tables
    python src/manage.py sweep-discounts           # Deactivate expired discounts
    python src/manage.py sweep-cancelled-orders    # Purge cancelled orders past retention
"""

import argparse
import sys
from datetime import datetime


def _domain():
    from storefront.domain import storefront

    storefront.init()
    return storefront


def setup_database():
    from storefront.utils.db import setup_db

    storefront = _domain()
    print("Creating storefront database schema...")
    setup_db(storefront)
    print("Done.")


def drop_database():
    from storefront.utils.db import drop_db

    storefront = _domain()
    print("Dropping storefront database schema...")
    drop_db(storefront)
    print("Done.")


def sweep_discounts(as_of=None):
    from storefront.wiring import build_services

    storefront = _domain()
    with storefront.domain_context():
        swept = build_services().resolver.sweep_expired(as_of=as_of)
    print(f"Deactivated {swept} expired discount(s).")
    return swept


def sweep_cancelled_orders(as_of=None):
    from storefront.wiring import build_services

    storefront = _domain()
    with storefront.domain_context():
        swept = build_services().workflow.sweep_cancelled_orders(as_of=as_of)
    print(f"Deleted {swept} cancelled order(s) past retention.")
    return swept


def main(argv=None):
    parser = argparse.ArgumentParser(description="Storefront management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    for name, help_text in (
        ("sweep-discounts", "Deactivate expired discounts and detach them from products"),
        ("sweep-cancelled-orders", "Delete cancelled orders older than the retention window"),
    ):
        sweep_parser = subparsers.add_parser(name, help=help_text)
        sweep_parser.add_argument(
            "--as-of",
            type=datetime.fromisoformat,
            default=None,
            help="Reference time in ISO 8601 (default: now)",
        )

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "sweep-discounts":
        sweep_discounts(args.as_of)
    elif args.command == "sweep-cancelled-orders":
        sweep_cancelled_orders(args.as_of)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
