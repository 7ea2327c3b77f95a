"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.valuations import get_reconciliation_service
from database import Base, get_db
from main import app
from services.market_data_service import MarketDataService
from services.reconciliation_service import ReconciliationService
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import account, holdings, other_account  # noqa: F401
from tests.fixtures.mocks import MockQuoteProvider, MockRateProvider, SAMPLE_QUOTES

# Fixed "today" for services built here; tests record this day or earlier.
TODAY = date(2024, 3, 15)


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="quote_provider")
def quote_provider_fixture():
    """Quote gateway with AAPL/MSFT in USD, INFY in INR, and BAD failing."""
    return MockQuoteProvider(quotes=SAMPLE_QUOTES, failing={"BAD"})


@pytest.fixture(name="rate_provider")
def rate_provider_fixture():
    """Rate gateway returning 80 home units per USD."""
    return MockRateProvider(rate=Decimal("80"))


@pytest.fixture(name="reconciliation_service")
def reconciliation_service_fixture(quote_provider, rate_provider):
    """ReconciliationService wired to the mock gateways (INR home, USD base, today fixed)."""
    market_data = MarketDataService(
        quote_provider=quote_provider, rate_provider=rate_provider, max_workers=4
    )
    return ReconciliationService(
        market_data_service=market_data,
        home_currency="INR",
        base_currency="USD",
        unavailable_price_policy="zero",
        retention_days=30,
        timeout=5.0,
        today=lambda: TODAY,
    )


@pytest.fixture(name="client")
def client_fixture(db, reconciliation_service):
    """Create a test client with the test database and mock gateways."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_reconciliation_service] = lambda: reconciliation_service
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
