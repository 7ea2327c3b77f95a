"""Test fixtures and sample data."""
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from models import Account, DailyTotal, Holding


def add_daily_total(
    db: Session,
    account: Account,
    valuation_date: date,
    final_total: Decimal,
    difference: Decimal = Decimal("0"),
) -> DailyTotal:
    """Insert a DailyTotal row directly (bypassing reconcile).

    This is a helper function (not a fixture) for tests that need a
    pre-existing totals history.
    """
    row = DailyTotal(
        account_id=account.id,
        valuation_date=valuation_date,
        final_total=final_total,
        difference=difference,
    )
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def account(db: Session) -> Account:
    """Create a test account."""
    acc = Account(name="Test Account")
    db.add(acc)
    db.commit()
    db.refresh(acc)
    return acc


@pytest.fixture
def other_account(db: Session) -> Account:
    """Create a second, independent account."""
    acc = Account(name="Another Account")
    db.add(acc)
    db.commit()
    db.refresh(acc)
    return acc


@pytest.fixture
def holdings(db: Session, account: Account) -> list[Holding]:
    """Store AAPL x 10 and MSFT x 2 for the test account."""
    rows = [
        Holding(
            account_id=account.id,
            symbol="AAPL",
            display_name="Apple Inc.",
            quantity=Decimal("10"),
        ),
        Holding(
            account_id=account.id,
            symbol="MSFT",
            display_name="Microsoft",
            quantity=Decimal("2"),
        ),
    ]
    db.add_all(rows)
    db.commit()
    for h in rows:
        db.refresh(h)
    return rows
