"""Pydantic schemas for account endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator


class AccountCreate(BaseModel):
    """Schema for creating an Account."""

    name: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class AccountResponse(BaseModel):
    """Schema for Account API response."""

    id: str
    name: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
