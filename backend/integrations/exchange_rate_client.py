"""Exchange rate gateway backed by an open-rates JSON API."""

import logging
import time as time_module
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from integrations.exceptions import RateUnavailableError

logger = logging.getLogger(__name__)

# Max retries for rate-limited requests
_MAX_RETRIES = 3
_BASE_DELAY_SECONDS = 1.0


class ExchangeRateClient:
    """Rate provider for ``GET {base_url}/{base_currency}`` style endpoints.

    The response is expected to look like
    ``{"result": "success", "rates": {"INR": 83.1, ...}}``.
    """

    def __init__(
        self,
        home_currency: str,
        base_url: str = "https://open.er-api.com/v6/latest",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        """Initialize the client.

        Args:
            home_currency: Currency every rate is quoted into.
            base_url: Endpoint prefix; the base currency is appended.
            timeout: Per-request timeout in seconds.
            client: Pre-built httpx client (tests inject a MockTransport).
        """
        self.home_currency = home_currency
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    @property
    def provider_name(self) -> str:
        return "exchange_rate"

    def _request_with_retry(self, path: str) -> httpx.Response:
        """GET ``path``, retrying 429 rate limit responses with backoff."""
        for attempt in range(_MAX_RETRIES):
            response = self._client.get(path)
            if response.status_code == 429:
                delay = _BASE_DELAY_SECONDS * (2 ** attempt)
                logger.warning(
                    "Exchange rate API rate limited, retrying in %.1fs (attempt %d/%d)",
                    delay, attempt + 1, _MAX_RETRIES,
                )
                time_module.sleep(delay)
                continue
            response.raise_for_status()
            return response

        raise RateUnavailableError(
            "Exchange rate API: max retries exceeded",
            provider_name=self.provider_name,
            status_code=429,
        )

    def get_home_rate(self, base_currency: str) -> Decimal:
        """Return the ``base_currency`` -> home currency conversion rate.

        Raises:
            RateUnavailableError: On network/HTTP errors or a malformed payload.
        """
        if base_currency == self.home_currency:
            return Decimal("1")

        try:
            response = self._request_with_retry(f"/{base_currency}")
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise RateUnavailableError(
                f"Exchange rate API returned {e.response.status_code} for {base_currency}",
                provider_name=self.provider_name,
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise RateUnavailableError(
                f"Exchange rate API request failed for {base_currency}: {e}",
                provider_name=self.provider_name,
            ) from e

        if data.get("result", "success") != "success":
            raise RateUnavailableError(
                f"Exchange rate API error for {base_currency}: {data.get('error-type', 'unknown')}",
                provider_name=self.provider_name,
            )

        raw = (data.get("rates") or {}).get(self.home_currency)
        try:
            rate = Decimal(str(raw))
        except (InvalidOperation, TypeError):
            rate = None
        if rate is None or not rate.is_finite() or rate <= 0:
            raise RateUnavailableError(
                f"No {base_currency}->{self.home_currency} rate in response",
                provider_name=self.provider_name,
            )

        logger.info("Exchange rate %s->%s = %s", base_currency, self.home_currency, rate)
        return rate
