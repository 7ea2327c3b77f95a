"""Account model - a tenant owning one holdings list and one totals series."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class Account(Base):
    """A portfolio account.

    Each account owns its holdings, its per-holding valuation snapshots
    and its daily totals. Deleting an account removes all three.
    """

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    holdings = relationship(
        "Holding", back_populates="account", cascade="all, delete-orphan"
    )
    valuation_snapshots = relationship(
        "ValuationSnapshot", back_populates="account", cascade="all, delete-orphan"
    )
    daily_totals = relationship(
        "DailyTotal", back_populates="account", cascade="all, delete-orphan"
    )
