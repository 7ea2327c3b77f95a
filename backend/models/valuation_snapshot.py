"""ValuationSnapshot model - best-known value of one holding on one day."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid

PRICE_LIVE = "live"
PRICE_UNAVAILABLE = "unavailable"
PRICE_CARRIED_FORWARD = "carried_forward"


class ValuationSnapshot(Base):
    """Home-currency valuation of a single holding on a single calendar day.

    A later refresh on the same day overwrites the row in place. When the
    quote lookup failed, ``unit_price_home`` and ``total_value_home`` are
    NULL and ``price_status`` is ``unavailable``.
    """

    __tablename__ = "valuation_snapshots"
    __table_args__ = (
        UniqueConstraint(
            "account_id", "holding_name", "valuation_date",
            name="uix_valuation_snapshot",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(
        String(36), ForeignKey("accounts.id"), nullable=False, index=True
    )
    holding_name = Column(String, nullable=False)  # Holding symbol
    display_name = Column(String, nullable=True)
    valuation_date = Column(Date, nullable=False, index=True)
    quantity = Column(Numeric(18, 8), nullable=False, default=Decimal("0"))
    quote_price = Column(Numeric(18, 6), nullable=True)
    quote_currency = Column(String(3), nullable=True)
    unit_price_home = Column(Numeric(18, 6), nullable=True)
    total_value_home = Column(Numeric(18, 2), nullable=True)
    price_status = Column(String, nullable=False, default=PRICE_LIVE)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    account = relationship("Account", back_populates="valuation_snapshots")
