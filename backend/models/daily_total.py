"""DailyTotal model - aggregate account value per calendar day."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class DailyTotal(Base):
    """An account's total holding value on one day.

    ``difference`` is derived: ``final_total`` minus the ``final_total`` of
    the most recent earlier row for the same account (0 when there is none).
    """

    __tablename__ = "daily_totals"
    __table_args__ = (
        UniqueConstraint("account_id", "valuation_date", name="uix_daily_total"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(
        String(36), ForeignKey("accounts.id"), nullable=False, index=True
    )
    valuation_date = Column(Date, nullable=False, index=True)
    final_total = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    difference = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    account = relationship("Account", back_populates="daily_totals")
