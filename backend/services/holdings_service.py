"""Holdings service - the per-account (symbol, quantity) store."""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import Holding
from services.exceptions import DuplicateHoldingError, NotFoundError

logger = logging.getLogger(__name__)


def normalize_symbol(symbol: str) -> str:
    """Strip and upper-case a ticker symbol, rejecting empty ones."""
    normalized = (symbol or "").strip().upper()
    if not normalized:
        raise ValueError("symbol must not be empty")
    return normalized


def _validate_quantity(quantity: Decimal) -> Decimal:
    quantity = Decimal(str(quantity))
    if not quantity.is_finite() or quantity <= 0:
        raise ValueError(f"quantity must be greater than zero, got {quantity}")
    return quantity


class HoldingsService:
    """CRUD operations on an account's holdings.

    One live record per (account, symbol). Writes commit immediately.
    """

    @staticmethod
    def list_holdings(db: Session, account_id: str) -> list[Holding]:
        """Get the account's holdings ordered by symbol."""
        return (
            db.query(Holding)
            .filter(Holding.account_id == account_id)
            .order_by(Holding.symbol)
            .all()
        )

    @staticmethod
    def get(db: Session, account_id: str, symbol: str) -> Holding:
        """Get one holding.

        Raises:
            NotFoundError: If the account does not hold ``symbol``.
        """
        symbol = normalize_symbol(symbol)
        holding = (
            db.query(Holding)
            .filter(Holding.account_id == account_id, Holding.symbol == symbol)
            .first()
        )
        if holding is None:
            raise NotFoundError(f"Holding '{symbol}' not found")
        return holding

    @staticmethod
    def add(
        db: Session,
        account_id: str,
        symbol: str,
        quantity: Decimal,
        display_name: Optional[str] = None,
    ) -> Holding:
        """Add a holding to an account.

        Raises:
            DuplicateHoldingError: If the account already holds the symbol.
            ValueError: On an empty symbol or non-positive quantity.
        """
        symbol = normalize_symbol(symbol)
        quantity = _validate_quantity(quantity)

        existing = (
            db.query(Holding)
            .filter(Holding.account_id == account_id, Holding.symbol == symbol)
            .first()
        )
        if existing is not None:
            raise DuplicateHoldingError(f"Holding '{symbol}' already exists")

        holding = Holding(
            account_id=account_id,
            symbol=symbol,
            display_name=(display_name or "").strip() or symbol,
            quantity=quantity,
        )
        db.add(holding)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise DuplicateHoldingError(f"Holding '{symbol}' already exists") from e
        db.refresh(holding)
        logger.info("Holding added: %s x %s (account=%s)", symbol, quantity, account_id)
        return holding

    @staticmethod
    def update_quantity(
        db: Session, account_id: str, symbol: str, quantity: Decimal
    ) -> Holding:
        """Set a holding's quantity.

        Raises:
            NotFoundError: If the account does not hold ``symbol``.
            ValueError: On a non-positive quantity.
        """
        quantity = _validate_quantity(quantity)
        holding = HoldingsService.get(db, account_id, symbol)
        holding.quantity = quantity
        db.commit()
        db.refresh(holding)
        logger.info("Holding updated: %s x %s (account=%s)", holding.symbol, quantity, account_id)
        return holding

    @staticmethod
    def remove(db: Session, account_id: str, symbol: str) -> None:
        """Remove a holding.

        Raises:
            NotFoundError: If the account does not hold ``symbol``.
        """
        holding = HoldingsService.get(db, account_id, symbol)
        symbol = holding.symbol
        db.delete(holding)
        db.commit()
        logger.info("Holding removed: %s (account=%s)", symbol, account_id)
