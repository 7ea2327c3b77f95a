"""Yahoo Finance quote gateway implementation."""

import logging
import math
from decimal import Decimal

import yfinance as yf

from integrations.exceptions import PriceUnavailableError
from integrations.market_data_protocol import Quote

logger = logging.getLogger(__name__)


class YahooFinanceClient:
    """Quote provider using Yahoo Finance (yfinance library).

    Reads the latest traded price and trading currency from
    ``Ticker.fast_info``. Anything short of a positive price with a
    currency is reported as :class:`PriceUnavailableError`.
    """

    @property
    def provider_name(self) -> str:
        return "yahoo"

    def get_quote(self, symbol: str) -> Quote:
        """Fetch the current price for ``symbol``.

        Args:
            symbol: Ticker symbol as Yahoo knows it (e.g. "AAPL", "INFY.NS").

        Returns:
            The latest Quote.

        Raises:
            PriceUnavailableError: On library/network errors or when Yahoo
                has no usable price for the symbol.
        """
        try:
            info = yf.Ticker(symbol).fast_info
            last_price = info.last_price
            currency = info.currency
        except Exception as e:
            raise PriceUnavailableError(
                f"Error fetching price for {symbol}: {e}",
                provider_name=self.provider_name,
                symbol=symbol,
            ) from e

        if last_price is None or math.isnan(float(last_price)) or float(last_price) <= 0:
            raise PriceUnavailableError(
                f"Price not found for {symbol}",
                provider_name=self.provider_name,
                symbol=symbol,
            )
        if not currency:
            raise PriceUnavailableError(
                f"Currency not reported for {symbol}",
                provider_name=self.provider_name,
                symbol=symbol,
            )

        price = Decimal(str(round(float(last_price), 6)))
        logger.debug("Yahoo Finance: %s = %s %s", symbol, price, currency)
        return Quote(symbol=symbol, price=price, currency=currency, source="yahoo")
