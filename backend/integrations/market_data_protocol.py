"""Market data provider protocol definitions.

Quote providers price a single symbol in its trading currency; rate
providers convert a base currency into the configured home currency.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol


@dataclass
class Quote:
    """Latest price for a symbol, in the currency it trades in."""

    symbol: str
    price: Decimal
    currency: str
    source: str  # e.g., "yahoo"


class QuoteProvider(Protocol):
    """Protocol for quote providers (the quote gateway)."""

    @property
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'yahoo')."""
        ...

    def get_quote(self, symbol: str) -> Quote:
        """Fetch the current price for ``symbol``.

        Raises:
            PriceUnavailableError: If the lookup fails or no price is known.
        """
        ...


class RateProvider(Protocol):
    """Protocol for conversion rate providers (the rate gateway)."""

    @property
    def provider_name(self) -> str:
        ...

    def get_home_rate(self, base_currency: str) -> Decimal:
        """Return how many home-currency units one ``base_currency`` unit buys.

        Raises:
            RateUnavailableError: If no rate can be obtained.
        """
        ...
