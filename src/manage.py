"""Brandson Sales management CLI.

Creates and drops the database schema of the sales domain, and runs the
periodic sweeps meant to be scheduled from cron.

Usage:
    python src/manage.py setup-db                  # Create all tables
    python src/manage.py drop-db                   # Drop all tables
    python src/manage.py expire-quotes             # Expire quotes past validity
    python src/manage.py mark-overdue-invoices     # Flag sent invoices past due
"""

import argparse
import sys
from datetime import datetime


def setup_database():
    """Create the database schema of the sales domain."""
    from sales.domain import sales
    from sales.utils.db import setup_db

    print("Initializing sales domain...")
    sales.init()
    print("Creating sales database schema...")
    setup_db(sales)
    print("Done.")


def drop_database():
    """Drop the database schema of the sales domain."""
    from sales.domain import sales
    from sales.utils.db import drop_db

    print("Initializing sales domain...")
    sales.init()
    print("Dropping sales database schema...")
    drop_db(sales)
    print("Done.")


def _sweep(command_cls, as_of: datetime | None, label: str):
    from protean.utils.globals import current_domain

    from sales.domain import sales
    from sales.utils.logging import configure_logging

    configure_logging()
    sales.init()
    with sales.domain_context():
        ids = current_domain.process(command_cls(as_of=as_of), asynchronous=False)
    print(f"{len(ids)} {label}.")
    return ids


def expire_quotes(as_of: datetime | None = None):
    from sales.quote.expiry import ExpireQuotes

    return _sweep(ExpireQuotes, as_of, "quote(s) expired")


def mark_overdue_invoices(as_of: datetime | None = None):
    from sales.invoice.status import MarkOverdueInvoices

    return _sweep(MarkOverdueInvoices, as_of, "invoice(s) marked overdue")


def main():
    parser = argparse.ArgumentParser(description="Brandson Sales management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    for name, help_text in (
        ("expire-quotes", "Expire draft, sent and accepted quotes past their validity"),
        ("mark-overdue-invoices", "Mark sent invoices past their due date as overdue"),
    ):
        sweep_parser = subparsers.add_parser(name, help=help_text)
        sweep_parser.add_argument(
            "--as-of",
            type=datetime.fromisoformat,
            default=None,
            help="Reference time in ISO 8601 (default: now)",
        )

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "expire-quotes":
        expire_quotes(args.as_of)
    elif args.command == "mark-overdue-invoices":
        mark_overdue_invoices(args.as_of)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
