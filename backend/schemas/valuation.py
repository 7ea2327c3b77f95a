"""Pydantic schemas for reconciliation and totals endpoints."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class HoldingValuationResponse(BaseModel):
    """Valuation of one holding as used by a reconcile."""

    holding_name: str
    display_name: str
    quantity: Decimal
    quote_price: Optional[Decimal] = None
    quote_currency: Optional[str] = None
    unit_price_home: Optional[Decimal] = None
    total_value_home: Optional[Decimal] = None
    price_status: str
    error: Optional[str] = None


class ReconciliationResponse(BaseModel):
    """Response for a refresh (reconcile) call."""

    account_id: str
    valuation_date: date
    home_currency: str
    rate: Decimal
    final_total: Decimal
    previous_total: Decimal
    difference: Decimal
    valuations: list[HoldingValuationResponse]
    unavailable_symbols: list[str]


class DailyTotalResponse(BaseModel):
    """A persisted daily aggregate."""

    account_id: str
    valuation_date: date
    final_total: Decimal
    difference: Decimal
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ValuationSnapshotResponse(BaseModel):
    """A persisted per-holding snapshot."""

    holding_name: str
    display_name: Optional[str] = None
    valuation_date: date
    quantity: Decimal
    quote_price: Optional[Decimal] = None
    quote_currency: Optional[str] = None
    unit_price_home: Optional[Decimal] = None
    total_value_home: Optional[Decimal] = None
    price_status: str

    model_config = ConfigDict(from_attributes=True)


class ComparisonResponse(BaseModel):
    """Totals on two days and ``total2 - total1``."""

    day1: date
    day2: date
    total1: Decimal
    total2: Decimal
    difference: Decimal
