"""External API integrations.

This package contains:
- Market data protocols: quote and conversion rate provider interfaces
- Yahoo Finance client: quote gateway
- Exchange rate client: home-currency rate gateway
"""

from integrations.exceptions import PriceUnavailableError, ProviderError, RateUnavailableError
from integrations.market_data_protocol import Quote, QuoteProvider, RateProvider

__all__ = [
    "PriceUnavailableError",
    "ProviderError",
    "Quote",
    "QuoteProvider",
    "RateProvider",
    "RateUnavailableError",
]
