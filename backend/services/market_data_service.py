"""Market data service: fans out quote lookups and the home rate lookup."""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from config import settings
from integrations.exceptions import PriceUnavailableError, RateUnavailableError
from integrations.market_data_protocol import Quote, QuoteProvider, RateProvider
from services.exceptions import ReconcileTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class MarketData:
    """Joined result of one fan-out: a quote (or None) per symbol plus the rate."""

    rate: Decimal
    quotes: dict[str, Optional[Quote]] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)


class MarketDataService:
    """Orchestrates quote and rate lookups via pluggable providers.

    Quotes are fetched concurrently, one task per symbol, alongside a single
    rate lookup. A failed quote only marks that symbol as unavailable; a
    failed rate lookup fails the whole fetch.
    """

    def __init__(
        self,
        quote_provider: Optional[QuoteProvider] = None,
        rate_provider: Optional[RateProvider] = None,
        max_workers: Optional[int] = None,
    ):
        """Initialize with optional providers for dependency injection.

        Args:
            quote_provider: Quote gateway. If None, a YahooFinanceClient is
                           created on first use.
            rate_provider: Rate gateway. If None, an ExchangeRateClient for
                          the configured home currency is created on first use.
            max_workers: Concurrent quote lookups (defaults to
                        settings.QUOTE_FETCH_WORKERS).
        """
        self._quote_provider = quote_provider
        self._rate_provider = rate_provider
        self.max_workers = max_workers or settings.QUOTE_FETCH_WORKERS

    @property
    def quote_provider(self) -> QuoteProvider:
        """Get the quote provider, creating if not provided."""
        if self._quote_provider is None:
            from integrations.yahoo_finance_client import YahooFinanceClient

            self._quote_provider = YahooFinanceClient()
        return self._quote_provider

    @property
    def rate_provider(self) -> RateProvider:
        """Get the rate provider, creating if not provided."""
        if self._rate_provider is None:
            from integrations.exchange_rate_client import ExchangeRateClient

            self._rate_provider = ExchangeRateClient(
                home_currency=settings.HOME_CURRENCY,
                base_url=settings.EXCHANGE_RATE_API_URL,
            )
        return self._rate_provider

    def get_quote(self, symbol: str) -> Quote:
        """Fetch a single quote, normalizing the symbol to uppercase."""
        return self.quote_provider.get_quote(symbol.strip().upper())

    def get_home_rate(self, base_currency: str) -> Decimal:
        """Fetch the rate, folding unexpected provider errors into RateUnavailableError."""
        try:
            return self.rate_provider.get_home_rate(base_currency)
        except RateUnavailableError:
            raise
        except Exception as e:
            raise RateUnavailableError(
                f"Rate lookup for {base_currency} failed: {e}",
                provider_name=getattr(self.rate_provider, "provider_name", ""),
            ) from e

    def _safe_quote(self, symbol: str) -> tuple[Optional[Quote], Optional[str]]:
        try:
            return self.get_quote(symbol), None
        except PriceUnavailableError as e:
            logger.warning("Price unavailable for %s: %s", symbol, e)
            return None, str(e)
        except Exception as e:
            logger.warning("Quote lookup failed for %s", symbol, exc_info=True)
            return None, f"Error fetching price for {symbol}: {e}"

    def fetch(
        self,
        symbols: list[str],
        base_currency: str,
        timeout: Optional[float] = None,
    ) -> MarketData:
        """Fetch quotes for ``symbols`` and the ``base_currency`` rate concurrently.

        Args:
            symbols: Ticker symbols (case-insensitive).
            base_currency: Currency whose home-currency rate is needed.
            timeout: Seconds to wait for every lookup to finish. None waits
                    indefinitely.

        Returns:
            MarketData keyed by uppercase symbol. Unavailable symbols map
            to None and have an entry in ``errors``.

        Raises:
            RateUnavailableError: If the rate lookup fails.
            ReconcileTimeoutError: If lookups are still running at the deadline.
        """
        normalized = [s.strip().upper() for s in symbols]
        executor = ThreadPoolExecutor(
            max_workers=self.max_workers + 1, thread_name_prefix="market-data"
        )
        try:
            rate_future = executor.submit(self.get_home_rate, base_currency)
            quote_futures = {s: executor.submit(self._safe_quote, s) for s in normalized}

            _, not_done = wait([rate_future, *quote_futures.values()], timeout=timeout)
            if not_done:
                for future in not_done:
                    future.cancel()
                raise ReconcileTimeoutError(
                    f"Market data lookups did not finish within {timeout}s "
                    f"({len(not_done)} still pending)"
                )

            rate = rate_future.result()
            result = MarketData(rate=rate)
            for symbol, future in quote_futures.items():
                quote, error = future.result()
                result.quotes[symbol] = quote
                if error is not None:
                    result.errors[symbol] = error
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.info(
            "Fetched %d/%d quotes, %s rate %s",
            len(normalized) - len(result.errors), len(normalized), base_currency, rate,
        )
        return result
