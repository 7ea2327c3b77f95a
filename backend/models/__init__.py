"""SQLAlchemy ORM models."""

from .account import Account
from .daily_total import DailyTotal
from .holding import Holding
from .valuation_snapshot import ValuationSnapshot
from .utils import generate_uuid

__all__ = ["Account", "DailyTotal", "Holding", "ValuationSnapshot", "generate_uuid"]
