"""Pydantic request/response schemas."""

from schemas.account import AccountCreate, AccountResponse
from schemas.holding import HoldingInput, HoldingQuantityUpdate, HoldingResponse
from schemas.valuation import (
    ComparisonResponse,
    DailyTotalResponse,
    HoldingValuationResponse,
    ReconciliationResponse,
    ValuationSnapshotResponse,
)

__all__ = [
    "AccountCreate",
    "AccountResponse",
    "ComparisonResponse",
    "DailyTotalResponse",
    "HoldingInput",
    "HoldingQuantityUpdate",
    "HoldingResponse",
    "HoldingValuationResponse",
    "ReconciliationResponse",
    "ValuationSnapshotResponse",
]
