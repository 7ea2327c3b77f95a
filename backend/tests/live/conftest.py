"""Live market data test fixtures."""

import pytest

from integrations.exchange_rate_client import ExchangeRateClient
from integrations.yahoo_finance_client import YahooFinanceClient


@pytest.fixture
def yahoo_client():
    """Create a real YahooFinanceClient for live tests."""
    return YahooFinanceClient()


@pytest.fixture
def rate_client():
    """Create a real ExchangeRateClient quoting into INR."""
    client = ExchangeRateClient(home_currency="INR")
    yield client
    client.close()
