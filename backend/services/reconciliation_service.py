"""Reconciliation service: daily valuation snapshots and totals."""

import logging
import threading
import time
import weakref
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Iterable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from models import DailyTotal, ValuationSnapshot
from models.valuation_snapshot import PRICE_CARRIED_FORWARD, PRICE_LIVE, PRICE_UNAVAILABLE
from services.account_service import AccountService
from services.exceptions import (
    NotFoundError,
    ReconcileTimeoutError,
    StoreReadError,
    StoreWriteError,
)
from services.holdings_service import HoldingsService, normalize_symbol
from services.market_data_service import MarketData, MarketDataService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
PRICE_PLACES = Decimal("0.000001")
ZERO = Decimal("0")

# One extra attempt after a uniqueness collision with another writer.
_MAX_WRITE_ATTEMPTS = 2


def today_in_reference_tz() -> date:
    """Return the current calendar day in settings.REFERENCE_TIMEZONE."""
    return datetime.now(ZoneInfo(settings.REFERENCE_TIMEZONE)).date()


@dataclass
class HoldingValuation:
    """Valuation of one holding as computed by a reconcile."""

    holding_name: str
    display_name: str
    quantity: Decimal
    quote_price: Optional[Decimal] = None
    quote_currency: Optional[str] = None
    unit_price_home: Optional[Decimal] = None
    total_value_home: Optional[Decimal] = None
    price_status: str = PRICE_UNAVAILABLE
    error: Optional[str] = None

    @property
    def price_available(self) -> bool:
        return self.price_status == PRICE_LIVE


@dataclass
class ReconciliationResult:
    """Outcome of a reconcile: the day's total plus the valuations behind it."""

    account_id: str
    valuation_date: date
    home_currency: str
    rate: Decimal
    final_total: Decimal
    previous_total: Decimal
    difference: Decimal
    valuations: list[HoldingValuation] = field(default_factory=list)

    @property
    def unavailable_symbols(self) -> list[str]:
        return [v.holding_name for v in self.valuations if not v.price_available]


@dataclass
class ComparisonResult:
    """Totals on two days and their difference (``total2 - total1``)."""

    day1: date
    day2: date
    total1: Decimal
    total2: Decimal
    difference: Decimal


class ReconciliationService:
    """Turns holdings plus live prices into persisted daily valuations.

    For one account and one day, every reconcile converges to exactly one
    ValuationSnapshot per holding and one DailyTotal, reflecting the most
    recent call. Calls for the same account are serialized by a
    per-account lock; different accounts never contend.
    """

    # Class-level lock map shared across all instances (one lock per account).
    # Entries disappear once no reconcile holds a reference to the lock.
    _account_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = (
        weakref.WeakValueDictionary()
    )
    _locks_guard = threading.Lock()

    def __init__(
        self,
        market_data_service: Optional[MarketDataService] = None,
        home_currency: Optional[str] = None,
        base_currency: Optional[str] = None,
        unavailable_price_policy: Optional[str] = None,
        retention_days: Optional[int] = None,
        timeout: Optional[float] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self._market_data_service = market_data_service
        self.today = today or today_in_reference_tz
        self.home_currency = home_currency or settings.HOME_CURRENCY
        self.base_currency = base_currency or settings.QUOTE_BASE_CURRENCY
        self.unavailable_price_policy = (
            unavailable_price_policy or settings.UNAVAILABLE_PRICE_POLICY
        )
        self.retention_days = (
            settings.TOTALS_RETENTION_DAYS if retention_days is None else retention_days
        )
        self.timeout = settings.RECONCILE_TIMEOUT_SECONDS if timeout is None else timeout

    @property
    def market_data_service(self) -> MarketDataService:
        if self._market_data_service is None:
            self._market_data_service = MarketDataService()
        return self._market_data_service

    @classmethod
    def _lock_for(cls, account_id: str) -> threading.Lock:
        with cls._locks_guard:
            lock = cls._account_locks.get(account_id)
            if lock is None:
                lock = threading.Lock()
                cls._account_locks[account_id] = lock
            return lock

    # ------------------------------------------------------------------
    # Reconcile
    # ------------------------------------------------------------------

    def reconcile(
        self,
        db: Session,
        account_id: str,
        holdings: Optional[Iterable[Any]] = None,
        valuation_date: Optional[date] = None,
        timeout: Optional[float] = None,
    ) -> ReconciliationResult:
        """Value an account's holdings for one day and persist the results.

        Args:
            db: Database session. Committed on success.
            account_id: Account to reconcile.
            holdings: Objects with ``symbol``, ``quantity`` and optionally
                ``display_name``. When None, the account's stored holdings
                are read.
            valuation_date: Day to record. Defaults to today in the
                reference time zone; later days are rejected.
            timeout: Seconds allowed for the whole call (lock wait and
                market data lookups). Defaults to the configured timeout.

        Returns:
            The ReconciliationResult, including unavailable holdings.

        Raises:
            NotFoundError: If the account does not exist.
            ValueError: If ``valuation_date`` is after today, or a holding
                is invalid.
            StoreReadError: If the account or its holdings cannot be read.
            RateUnavailableError: If no conversion rate could be obtained.
            ReconcileTimeoutError: If the deadline passed before writing.
            StoreWriteError: If persisting snapshots or the total failed.
        """
        today = self.today()
        valuation_date = valuation_date or today
        if valuation_date > today:
            raise ValueError(
                f"valuation_date {valuation_date.isoformat()} is in the future "
                f"(today is {today.isoformat()})"
            )
        timeout = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout

        try:
            AccountService.get(db, account_id)
        except SQLAlchemyError as e:
            raise StoreReadError(f"Could not read account {account_id}: {e}") from e

        lock = self._lock_for(account_id)
        if not lock.acquire(timeout=timeout):
            raise ReconcileTimeoutError(
                f"Timed out waiting for another reconcile of account {account_id}"
            )
        try:
            positions = self._resolve_holdings(db, account_id, holdings)

            market_data = self.market_data_service.fetch(
                [p[0] for p in positions],
                self.base_currency,
                timeout=max(deadline - time.monotonic(), 0),
            )
            valuations = [
                self._value_holding(symbol, name, quantity, market_data)
                for symbol, name, quantity in positions
            ]
            if self.unavailable_price_policy == "carry_forward":
                self._carry_forward(db, account_id, valuation_date, valuations)

            if time.monotonic() > deadline:
                raise ReconcileTimeoutError(
                    f"Reconcile of account {account_id} exceeded {timeout}s before writing"
                )

            total_row, previous_total = self._write(
                db, account_id, valuation_date, valuations
            )
        finally:
            lock.release()

        result = ReconciliationResult(
            account_id=account_id,
            valuation_date=valuation_date,
            home_currency=self.home_currency,
            rate=market_data.rate,
            final_total=total_row.final_total,
            previous_total=previous_total,
            difference=total_row.difference,
            valuations=valuations,
        )
        logger.info(
            "Reconciled account %s for %s: total=%s difference=%s (%d holdings, %d unavailable)",
            account_id, valuation_date, result.final_total, result.difference,
            len(valuations), len(result.unavailable_symbols),
        )

        try:
            self.purge_expired(db, account_id, today)
        except Exception:
            db.rollback()
            logger.warning(
                "Retention purge failed for account %s", account_id, exc_info=True
            )

        return result

    def _resolve_holdings(
        self, db: Session, account_id: str, holdings: Optional[Iterable[Any]]
    ) -> list[tuple[str, str, Decimal]]:
        """Normalize holdings to (symbol, display_name, quantity) tuples."""
        if holdings is None:
            try:
                holdings = HoldingsService.list_holdings(db, account_id)
            except SQLAlchemyError as e:
                raise StoreReadError(
                    f"Could not read holdings for account {account_id}: {e}"
                ) from e

        positions: list[tuple[str, str, Decimal]] = []
        seen: set[str] = set()
        for h in holdings:
            symbol = normalize_symbol(h.symbol)
            quantity = Decimal(str(h.quantity))
            if not quantity.is_finite() or quantity <= 0:
                raise ValueError(f"Holding {symbol} has non-positive quantity {quantity}")
            if symbol in seen:
                raise ValueError(f"Holding {symbol} listed more than once")
            seen.add(symbol)
            display_name = getattr(h, "display_name", None) or symbol
            positions.append((symbol, display_name, quantity))
        return positions

    def _value_holding(
        self,
        symbol: str,
        display_name: str,
        quantity: Decimal,
        market_data: MarketData,
    ) -> HoldingValuation:
        """Convert one holding's quote to the home currency."""
        valuation = HoldingValuation(
            holding_name=symbol, display_name=display_name, quantity=quantity
        )
        quote = market_data.quotes.get(symbol)
        if quote is None:
            valuation.error = market_data.errors.get(symbol)
            return valuation

        valuation.quote_price = quote.price
        valuation.quote_currency = quote.currency
        # Exact code comparison; "GBp" and "gbp" do not match "GBP".
        if quote.currency == self.home_currency:
            unit_price = quote.price
        else:
            if quote.currency != self.base_currency:
                logger.warning(
                    "%s is quoted in %s but converted with the %s->%s rate",
                    symbol, quote.currency, self.base_currency, self.home_currency,
                )
            unit_price = quote.price * market_data.rate

        valuation.unit_price_home = unit_price.quantize(PRICE_PLACES, rounding=ROUND_HALF_UP)
        valuation.total_value_home = (valuation.unit_price_home * quantity).quantize(
            CENTS, rounding=ROUND_HALF_UP
        )
        valuation.price_status = PRICE_LIVE
        return valuation

    def _carry_forward(
        self,
        db: Session,
        account_id: str,
        valuation_date: date,
        valuations: list[HoldingValuation],
    ) -> None:
        """Value unavailable holdings at their last recorded home price."""
        for v in valuations:
            if v.price_available:
                continue
            try:
                last = (
                    db.query(ValuationSnapshot)
                    .filter(
                        ValuationSnapshot.account_id == account_id,
                        ValuationSnapshot.holding_name == v.holding_name,
                        ValuationSnapshot.valuation_date < valuation_date,
                        ValuationSnapshot.unit_price_home.isnot(None),
                    )
                    .order_by(ValuationSnapshot.valuation_date.desc())
                    .first()
                )
            except SQLAlchemyError as e:
                raise StoreReadError(
                    f"Could not read prior snapshot for {v.holding_name}: {e}"
                ) from e
            if last is None:
                continue
            v.unit_price_home = Decimal(last.unit_price_home)
            v.total_value_home = (v.unit_price_home * v.quantity).quantize(
                CENTS, rounding=ROUND_HALF_UP
            )
            v.price_status = PRICE_CARRIED_FORWARD
            logger.info(
                "Carried forward %s price %s from %s",
                v.holding_name, v.unit_price_home, last.valuation_date,
            )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _write(
        self,
        db: Session,
        account_id: str,
        valuation_date: date,
        valuations: list[HoldingValuation],
    ) -> tuple[DailyTotal, Decimal]:
        """Upsert snapshots and the daily total in one transaction."""
        for attempt in range(1, _MAX_WRITE_ATTEMPTS + 1):
            try:
                self._upsert_snapshots(db, account_id, valuation_date, valuations)
                final_total = sum(
                    (v.total_value_home for v in valuations if v.total_value_home is not None),
                    ZERO,
                )
                previous_total = self._previous_total(db, account_id, valuation_date)
                total_row = self._upsert_daily_total(
                    db, account_id, valuation_date, final_total, final_total - previous_total
                )
                self._rebase_next_total(db, account_id, valuation_date, final_total)
                db.commit()
                db.refresh(total_row)
                return total_row, previous_total
            except IntegrityError as e:
                db.rollback()
                if attempt == _MAX_WRITE_ATTEMPTS:
                    raise StoreWriteError(
                        f"Could not persist valuation for account {account_id}: {e}"
                    ) from e
                logger.info(
                    "Concurrent insert for account %s on %s, retrying as update",
                    account_id, valuation_date,
                )
            except SQLAlchemyError as e:
                db.rollback()
                raise StoreWriteError(
                    f"Could not persist valuation for account {account_id}: {e}"
                ) from e

    @staticmethod
    def _upsert_snapshots(
        db: Session,
        account_id: str,
        valuation_date: date,
        valuations: list[HoldingValuation],
    ) -> list[ValuationSnapshot]:
        """Insert or overwrite one snapshot per holding for the day.

        Snapshots for holdings no longer in the list are deleted so the
        day's snapshots always sum to the day's total.
        """
        names = [v.holding_name for v in valuations]
        stale = db.query(ValuationSnapshot).filter(
            ValuationSnapshot.account_id == account_id,
            ValuationSnapshot.valuation_date == valuation_date,
        )
        if names:
            stale = stale.filter(ValuationSnapshot.holding_name.notin_(names))
        stale.delete(synchronize_session="fetch")

        rows: list[ValuationSnapshot] = []
        for v in valuations:
            existing = (
                db.query(ValuationSnapshot)
                .filter(
                    ValuationSnapshot.account_id == account_id,
                    ValuationSnapshot.holding_name == v.holding_name,
                    ValuationSnapshot.valuation_date == valuation_date,
                )
                .first()
            )
            if existing is None:
                existing = ValuationSnapshot(
                    account_id=account_id,
                    holding_name=v.holding_name,
                    valuation_date=valuation_date,
                )
                db.add(existing)
            existing.display_name = v.display_name
            existing.quantity = v.quantity
            existing.quote_price = v.quote_price
            existing.quote_currency = v.quote_currency
            existing.unit_price_home = v.unit_price_home
            existing.total_value_home = v.total_value_home
            existing.price_status = v.price_status
            rows.append(existing)
        db.flush()
        return rows

    @staticmethod
    def _previous_total(db: Session, account_id: str, valuation_date: date) -> Decimal:
        """Return the latest total strictly before ``valuation_date``, or 0."""
        prior = (
            db.query(DailyTotal)
            .filter(
                DailyTotal.account_id == account_id,
                DailyTotal.valuation_date < valuation_date,
            )
            .order_by(DailyTotal.valuation_date.desc())
            .first()
        )
        if prior is None:
            return ZERO
        return Decimal(prior.final_total)

    @staticmethod
    def _rebase_next_total(
        db: Session, account_id: str, valuation_date: date, final_total: Decimal
    ) -> None:
        """Recompute the difference of the first total after a backfilled day."""
        following = (
            db.query(DailyTotal)
            .filter(
                DailyTotal.account_id == account_id,
                DailyTotal.valuation_date > valuation_date,
            )
            .order_by(DailyTotal.valuation_date)
            .first()
        )
        if following is None:
            return
        following.difference = Decimal(following.final_total) - final_total
        db.flush()
        logger.info(
            "Rebased difference for account %s on %s after backfilling %s",
            account_id, following.valuation_date, valuation_date,
        )

    @staticmethod
    def _upsert_daily_total(
        db: Session,
        account_id: str,
        valuation_date: date,
        final_total: Decimal,
        difference: Decimal,
    ) -> DailyTotal:
        existing = (
            db.query(DailyTotal)
            .filter(
                DailyTotal.account_id == account_id,
                DailyTotal.valuation_date == valuation_date,
            )
            .first()
        )
        if existing is None:
            existing = DailyTotal(account_id=account_id, valuation_date=valuation_date)
            db.add(existing)
        existing.final_total = final_total
        existing.difference = difference
        db.flush()
        return existing

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    def purge_expired(
        self, db: Session, account_id: str, reference_date: date
    ) -> int:
        """Delete totals and snapshots older than the retention window.

        The window ends at ``reference_date``; reconcile passes today, not
        the day it recorded, so a backfill never shortens the window.

        Returns:
            Number of DailyTotal rows deleted (0 when retention is disabled).
        """
        if self.retention_days <= 0:
            return 0

        cutoff = reference_date - timedelta(days=self.retention_days)
        deleted = (
            db.query(DailyTotal)
            .filter(
                DailyTotal.account_id == account_id,
                DailyTotal.valuation_date < cutoff,
            )
            .delete(synchronize_session="fetch")
        )
        db.query(ValuationSnapshot).filter(
            ValuationSnapshot.account_id == account_id,
            ValuationSnapshot.valuation_date < cutoff,
        ).delete(synchronize_session="fetch")
        db.commit()
        if deleted:
            logger.info(
                "Purged %d daily totals before %s for account %s",
                deleted, cutoff, account_id,
            )
        return deleted

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def get_total(db: Session, account_id: str, valuation_date: date) -> DailyTotal:
        """Get the total recorded on exactly ``valuation_date``.

        Raises:
            NotFoundError: If no total exists for that day.
        """
        row = (
            db.query(DailyTotal)
            .filter(
                DailyTotal.account_id == account_id,
                DailyTotal.valuation_date == valuation_date,
            )
            .first()
        )
        if row is None:
            raise NotFoundError(f"No total recorded on {valuation_date.isoformat()}")
        return row

    @staticmethod
    def compare(
        db: Session, account_id: str, day1: date, day2: date
    ) -> ComparisonResult:
        """Compare the totals recorded on two exact days.

        No nearest-day fallback; the order of the days is kept as given.

        Raises:
            NotFoundError: If either day has no recorded total.
        """
        total1 = Decimal(ReconciliationService.get_total(db, account_id, day1).final_total)
        total2 = Decimal(ReconciliationService.get_total(db, account_id, day2).final_total)
        return ComparisonResult(
            day1=day1,
            day2=day2,
            total1=total1,
            total2=total2,
            difference=total2 - total1,
        )

    @staticmethod
    def latest_total(db: Session, account_id: str) -> Optional[DailyTotal]:
        """Get the most recent total for an account, or None."""
        return (
            db.query(DailyTotal)
            .filter(DailyTotal.account_id == account_id)
            .order_by(DailyTotal.valuation_date.desc())
            .first()
        )

    @staticmethod
    def list_totals(
        db: Session,
        account_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[DailyTotal]:
        """List totals in ``[start_date, end_date]`` ordered by date."""
        query = db.query(DailyTotal).filter(DailyTotal.account_id == account_id)
        if start_date is not None:
            query = query.filter(DailyTotal.valuation_date >= start_date)
        if end_date is not None:
            query = query.filter(DailyTotal.valuation_date <= end_date)
        return query.order_by(DailyTotal.valuation_date).all()

    @staticmethod
    def list_snapshots(
        db: Session, account_id: str, valuation_date: date
    ) -> list[ValuationSnapshot]:
        """List the per-holding snapshots recorded on one day."""
        return (
            db.query(ValuationSnapshot)
            .filter(
                ValuationSnapshot.account_id == account_id,
                ValuationSnapshot.valuation_date == valuation_date,
            )
            .order_by(ValuationSnapshot.holding_name)
            .all()
        )
