"""Refresh, totals history and comparison endpoints."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from api.helpers import get_account_or_404, to_http_exception
from database import get_db
from integrations.exceptions import ProviderError
from schemas import (
    ComparisonResponse,
    DailyTotalResponse,
    HoldingValuationResponse,
    ReconciliationResponse,
    ValuationSnapshotResponse,
)
from services.exceptions import NotFoundError, ServiceError
from services.reconciliation_service import ReconciliationResult, ReconciliationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/accounts/{account_id}", tags=["valuations"])

# Dependency injection for testing
_reconciliation_service_override: Optional[ReconciliationService] = None


def get_reconciliation_service() -> ReconciliationService:
    """Get ReconciliationService instance, allowing for test overrides."""
    if _reconciliation_service_override is not None:
        return _reconciliation_service_override
    return ReconciliationService()


def set_reconciliation_service_override(service: Optional[ReconciliationService]) -> None:
    """Set a ReconciliationService override for testing."""
    global _reconciliation_service_override
    _reconciliation_service_override = service


def _to_response(result: ReconciliationResult) -> ReconciliationResponse:
    return ReconciliationResponse(
        account_id=result.account_id,
        valuation_date=result.valuation_date,
        home_currency=result.home_currency,
        rate=result.rate,
        final_total=result.final_total,
        previous_total=result.previous_total,
        difference=result.difference,
        valuations=[
            HoldingValuationResponse(
                holding_name=v.holding_name,
                display_name=v.display_name,
                quantity=v.quantity,
                quote_price=v.quote_price,
                quote_currency=v.quote_currency,
                unit_price_home=v.unit_price_home,
                total_value_home=v.total_value_home,
                price_status=v.price_status,
                error=v.error,
            )
            for v in result.valuations
        ],
        unavailable_symbols=result.unavailable_symbols,
    )


@router.post("/refresh", response_model=ReconciliationResponse)
def refresh(
    account_id: str,
    valuation_date: Optional[date] = Query(None, description="Day to record (default: today)"),
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """Fetch prices and record today's snapshots and total for the account.

    Holdings with no available price are reported in ``unavailable_symbols``
    and do not fail the call.

    Raises:
        HTTPException:
            - 404 Not Found: Unknown account
            - 422 Unprocessable Entity: valuation_date after today
            - 502 Bad Gateway: Conversion rate unavailable (nothing written)
            - 503 Service Unavailable: Store read/write failure (safe to retry)
            - 504 Gateway Timeout: Deadline exceeded before writing
    """
    get_account_or_404(db, account_id)
    try:
        result = service.reconcile(db, account_id, valuation_date=valuation_date)
    except (ServiceError, ProviderError, ValueError) as e:
        logger.warning("Refresh failed for account %s: %s", account_id, e)
        raise to_http_exception(e) from e
    return _to_response(result)


@router.get("/totals/latest", response_model=DailyTotalResponse)
def get_latest_total(account_id: str, db: Session = Depends(get_db)):
    """Get the most recent daily total."""
    get_account_or_404(db, account_id)
    total = ReconciliationService.latest_total(db, account_id)
    if total is None:
        raise HTTPException(status_code=404, detail="No totals recorded yet")
    return total


@router.get("/totals", response_model=list[DailyTotalResponse])
def list_totals(
    account_id: str,
    start: Optional[date] = Query(None, description="Start date (inclusive)"),
    end: Optional[date] = Query(None, description="End date (inclusive)"),
    db: Session = Depends(get_db),
):
    """List daily totals, oldest first, for charting."""
    get_account_or_404(db, account_id)
    if start is not None and end is not None and start > end:
        raise HTTPException(status_code=422, detail="start must be on or before end")
    return ReconciliationService.list_totals(db, account_id, start, end)


@router.get("/snapshots", response_model=list[ValuationSnapshotResponse])
def list_snapshots(
    account_id: str,
    valuation_date: date = Query(..., description="Day to list"),
    db: Session = Depends(get_db),
):
    """List per-holding snapshots recorded on one day."""
    get_account_or_404(db, account_id)
    return ReconciliationService.list_snapshots(db, account_id, valuation_date)


@router.get("/compare", response_model=ComparisonResponse)
def compare_totals(
    account_id: str,
    day1: date = Query(...),
    day2: date = Query(...),
    db: Session = Depends(get_db),
):
    """Compare totals recorded on two exact days (``total2 - total1``)."""
    get_account_or_404(db, account_id)
    try:
        result = ReconciliationService.compare(db, account_id, day1, day2)
    except NotFoundError as e:
        raise to_http_exception(e) from e
    return ComparisonResponse(
        day1=result.day1,
        day2=result.day2,
        total1=result.total1,
        total2=result.total2,
        difference=result.difference,
    )
