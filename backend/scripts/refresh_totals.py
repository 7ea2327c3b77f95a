#!/usr/bin/env python
"""Refresh prices and record daily totals for every account.

Intended to run from cron (or any scheduler) once or more per day.
Repeated runs on the same day overwrite that day's rows.

Usage:
    python -m scripts.refresh_totals
    python -m scripts.refresh_totals --account "Brokerage"
    python -m scripts.refresh_totals --date 2024-01-15
"""

import argparse
import sys
from datetime import date

from database import dispose_engine, get_session_local, init_db
from integrations.exceptions import ProviderError
from logging_config import setup_logging
from models import Account
from services.exceptions import ServiceError
from services.reconciliation_service import ReconciliationService, today_in_reference_tz


def refresh_all(
    account_name: str | None = None,
    valuation_date: date | None = None,
    service: ReconciliationService | None = None,
    session_factory=None,
) -> int:
    """Reconcile each account. Returns the number of accounts that failed."""
    service = service or ReconciliationService()
    SessionLocal = session_factory or get_session_local()
    db = SessionLocal()
    failures = 0

    try:
        query = db.query(Account).order_by(Account.name)
        if account_name:
            query = query.filter(Account.name == account_name)
        accounts = query.all()

        if not accounts:
            print("No matching accounts")
            return 0

        for account in accounts:
            try:
                result = service.reconcile(db, account.id, valuation_date=valuation_date)
            except (ServiceError, ProviderError, ValueError) as e:
                failures += 1
                print(f"  {account.name}: FAILED ({e})")
                continue

            line = (
                f"  {account.name}: {result.final_total} {result.home_currency} "
                f"(difference {result.difference:+}) on {result.valuation_date}"
            )
            if result.unavailable_symbols:
                line += f" [no price: {', '.join(result.unavailable_symbols)}]"
            print(line)
    finally:
        db.close()

    return failures


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--account", help="Only refresh the account with this name")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        help="Valuation date (YYYY-MM-DD); defaults to today in REFERENCE_TIMEZONE",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    args = parser.parse_args(argv)
    if args.date is not None and args.date > today_in_reference_tz():
        parser.error(f"--date {args.date.isoformat()} is in the future")

    setup_logging("DEBUG" if args.verbose else None)
    init_db()
    try:
        failures = refresh_all(account_name=args.account, valuation_date=args.date)
    finally:
        dispose_engine()
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
