"""Pydantic schemas for holdings endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HoldingInput(BaseModel):
    """Schema for adding a holding to an account.

    ``symbol`` is stripped and upper-cased; ``display_name`` defaults to
    the symbol when omitted.
    """

    symbol: str
    display_name: Optional[str] = None
    quantity: Decimal = Field(gt=0)

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("symbol must not be empty")
        return v

    @field_validator("display_name")
    @classmethod
    def blank_display_name_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class HoldingQuantityUpdate(BaseModel):
    """Schema for changing a holding's quantity."""

    quantity: Decimal = Field(gt=0)


class HoldingResponse(BaseModel):
    """Schema for Holding API response."""

    id: str
    account_id: str
    symbol: str
    display_name: str
    quantity: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
