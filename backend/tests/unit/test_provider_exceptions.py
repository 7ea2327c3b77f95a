"""Unit tests for the provider exception hierarchy."""

import pytest

from integrations.exceptions import PriceUnavailableError, ProviderError, RateUnavailableError


class TestExceptionHierarchy:
    """Both gateway failures are caught by except ProviderError."""

    def test_price_unavailable_is_provider_error(self):
        exc = PriceUnavailableError("no price", provider_name="yahoo", symbol="FAKE")
        assert isinstance(exc, ProviderError)
        assert exc.symbol == "FAKE"
        assert exc.provider_name == "yahoo"

    def test_rate_unavailable_is_provider_error(self):
        with pytest.raises(ProviderError):
            raise RateUnavailableError("down", provider_name="exchange_rate")


class TestRateUnavailableRetriable:
    """RateUnavailableError.retriable depends on status_code."""

    @pytest.mark.parametrize("status_code", [429, 500, 503])
    def test_retriable_statuses(self, status_code):
        assert RateUnavailableError("x", status_code=status_code).retriable is True

    @pytest.mark.parametrize("status_code", [400, 401, 404])
    def test_client_errors_not_retriable(self, status_code):
        assert RateUnavailableError("x", status_code=status_code).retriable is False

    def test_network_error_retriable(self):
        assert RateUnavailableError("connection reset").retriable is True
