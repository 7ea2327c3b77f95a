"""Typed exception hierarchy for market data provider errors.

Separates per-holding quote failures (non-fatal to a reconcile) from
conversion rate failures (fatal to a reconcile).
"""


class ProviderError(Exception):
    """Base exception for all provider-related errors.

    Carries the provider name so callers can identify which provider failed.
    """

    def __init__(self, message: str, provider_name: str = ""):
        self.provider_name = provider_name
        super().__init__(message)


class PriceUnavailableError(ProviderError):
    """No usable quote for a symbol (lookup failed, missing or stale price)."""

    def __init__(self, message: str, provider_name: str = "", symbol: str = ""):
        self.symbol = symbol
        super().__init__(message, provider_name)


class RateUnavailableError(ProviderError):
    """No conversion rate to the home currency could be obtained."""

    def __init__(
        self,
        message: str,
        provider_name: str = "",
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, provider_name)

    @property
    def retriable(self) -> bool:
        """Network failures, 429 (rate limit) and 5xx errors are generally retriable."""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500
